"""Configuration loading from environment variables and acs.toml."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

from acs.errors import ConfigError
from acs.state.layout import resolve_root

logger = logging.getLogger(__name__)

_CONFIG_FILENAME = "acs.toml"
_TARGETS = ("docker", "swarm")


@dataclass
class SwarmConfig:
    """Swarm orchestrator settings."""

    namespace: str = "default"
    context: str | None = None


@dataclass
class RuntimeConfig:
    """Execution target defaults, consumed by the runtime layer only."""

    target: str = "docker"
    image: str | None = None
    command: str = "echo"
    args: list[str] = field(default_factory=lambda: ["acs runtime started"])
    swarm: SwarmConfig = field(default_factory=SwarmConfig)


@dataclass
class ACSConfig:
    """Top-level ACS configuration."""

    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    home: Path | None = None
    log_level: str = "WARNING"
    source: Path | None = None


def _find_config_file(config_path: Path | None) -> Path | None:
    if config_path is not None:
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        return config_path
    # Search current dir, then the tenancy root
    for candidate in [Path.cwd() / _CONFIG_FILENAME, resolve_root() / _CONFIG_FILENAME]:
        if candidate.exists():
            return candidate
    return None


def _validate(config: ACSConfig, origin: str) -> None:
    runtime = config.runtime
    if runtime.target not in _TARGETS:
        raise ConfigError(
            f"Invalid config ({origin}): runtime.target must be one of "
            f"{', '.join(_TARGETS)}, got {runtime.target!r}"
        )
    if not isinstance(runtime.command, str) or not runtime.command:
        raise ConfigError(f"Invalid config ({origin}): runtime.command must be a non-empty string")
    if not isinstance(runtime.args, list) or not all(isinstance(a, str) for a in runtime.args):
        raise ConfigError(f"Invalid config ({origin}): runtime.args must be a list of strings")
    if not runtime.swarm.namespace:
        raise ConfigError(f"Invalid config ({origin}): runtime.swarm.namespace must not be empty")


def load_config(config_path: Path | None = None) -> ACSConfig:
    """Load configuration from environment variables and optional acs.toml.

    Priority: environment variables > acs.toml > defaults.
    """
    file_data: dict = {}
    source = _find_config_file(config_path)
    if source is not None:
        try:
            file_data = tomllib.loads(source.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid config file ({source}): {e}") from e
    else:
        logger.debug("No %s found, using built-in defaults", _CONFIG_FILENAME)

    where = str(source) if source else "defaults"
    runtime_data = file_data.get("runtime", {})
    if not isinstance(runtime_data, dict):
        raise ConfigError(f"Invalid config ({where}): runtime must be a table")
    swarm_data = runtime_data.get("swarm", {})
    if not isinstance(swarm_data, dict):
        raise ConfigError(f"Invalid config ({where}): runtime.swarm must be a table")
    defaults = RuntimeConfig()

    home = os.getenv("ACS_HOME", file_data.get("home"))

    config = ACSConfig(
        runtime=RuntimeConfig(
            target=os.getenv("ACS_TARGET", runtime_data.get("target", defaults.target)),
            image=os.getenv("ACS_IMAGE", runtime_data.get("image")),
            command=runtime_data.get("command", defaults.command),
            args=runtime_data.get("args", list(defaults.args)),
            swarm=SwarmConfig(
                namespace=os.getenv(
                    "ACS_SWARM_NAMESPACE", swarm_data.get("namespace", "default")
                ),
                context=swarm_data.get("context"),
            ),
        ),
        home=Path(home).expanduser() if home else None,
        log_level=os.getenv("ACS_LOG_LEVEL", file_data.get("log_level", "WARNING")),
        source=source,
    )
    _validate(config, where)
    return config
