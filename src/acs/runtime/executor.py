"""Build and launch the external command for a runtime target."""

from __future__ import annotations

import asyncio
import logging
import re

from acs.config import RuntimeConfig
from acs.errors import ConfigError, ExecutionError

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s")


def _docker_command(name: str, runtime: RuntimeConfig) -> list[str]:
    if not runtime.image:
        raise ConfigError(
            "runtime.image is required when target=docker. Set it in acs.toml or ACS_IMAGE."
        )
    return [
        "docker", "run",
        "-d", "--rm",
        "--name", name,
        runtime.image,
        runtime.command,
        *runtime.args,
    ]


def _swarm_command(name: str, runtime: RuntimeConfig) -> list[str]:
    namespace = runtime.swarm.namespace
    if not runtime.image:
        return ["echo", f"swarm placeholder deployment for {name} in namespace {namespace}"]
    cmd = ["docker"]
    if runtime.swarm.context:
        cmd.extend(["--context", runtime.swarm.context])
    cmd.extend([
        "service", "create",
        "--detach",
        "--name", name,
        "--label", f"acs.namespace={namespace}",
        runtime.image,
        runtime.command,
        *runtime.args,
    ])
    return cmd


def build_target_command(name: str, target: str, runtime: RuntimeConfig) -> list[str]:
    if target == "docker":
        return _docker_command(name, runtime)
    if target == "swarm":
        return _swarm_command(name, runtime)
    raise ConfigError(f"Unsupported runtime target: {target}")


def format_command(cmd: list[str]) -> str:
    """Shell-like rendering for logs; arguments with whitespace are quoted."""
    return " ".join(f'"{arg}"' if _WHITESPACE_RE.search(arg) else arg for arg in cmd)


async def launch(cmd: list[str]) -> str:
    """Run ``cmd`` to completion and return its stdout.

    Raises ExecutionError if the executable is missing, the process is killed
    by a signal, or it exits non-zero.
    """
    logger.debug("Launching: %s", format_command(cmd))
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except (FileNotFoundError, PermissionError):
        raise ExecutionError(
            f'Could not execute "{cmd[0]}". Ensure it is installed and available in PATH.'
        ) from None

    stdout, stderr = await process.communicate()
    code = process.returncode
    if code is not None and code < 0:
        raise ExecutionError(f"Runtime command was interrupted by signal {-code}.")
    if code != 0:
        detail = stderr.decode("utf-8", errors="replace").strip()
        message = f"Runtime command exited with code {code}."
        raise ExecutionError(f"{message} {detail}" if detail else message)
    return stdout.decode("utf-8", errors="replace").strip()
