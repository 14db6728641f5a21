"""Run an existing runtime instance and record the attempt.

Status transitions are written before and after the external process:

    instance: created/stopped/error -> running        (before launch)
              running -> error                        (launch failed)
    run:      running -> completed | failed           (after launch)

Dry runs leave the instance untouched and record a completed run.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from pathlib import Path

from acs.config import ACSConfig
from acs.errors import ExecutionError, InstanceNotFoundError
from acs.runtime.executor import build_target_command, format_command, launch
from acs.state.instances import find_instance_by_name, save_instance
from acs.state.records import Run, RuntimeInstance, utc_now
from acs.state.runs import create_run, run_path, save_run
from acs.state.scope import Scope, resolve_scope

logger = logging.getLogger(__name__)

Launcher = Callable[[list[str]], Awaitable[str]]


@dataclass
class RunOutcome:
    scope: Scope
    instance: RuntimeInstance
    run: Run
    command: str
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


async def run_instance(
    name: str,
    config: ACSConfig,
    *,
    root: str | Path | None = None,
    environment: str | None = None,
    project_id: str | None = None,
    dry_run: bool = False,
    launcher: Launcher | None = None,
) -> RunOutcome:
    launcher = launcher or launch
    scope = resolve_scope(root, environment, project_id)
    found = find_instance_by_name(scope, name)
    if found is None:
        raise InstanceNotFoundError(name, scope.label)
    path, instance = found

    cmd = build_target_command(instance.name, instance.target, config.runtime)
    command = format_command(cmd)
    logger.info(
        "Prepared runtime command for %s in %s (target=%s, dry_run=%s): %s",
        instance.name, scope.label, instance.target, dry_run, command,
    )

    started_at = utc_now()
    if dry_run:
        run = create_run(
            scope,
            instance_id=instance.id,
            instance_name=instance.name,
            target=instance.target,
            source_url=instance.source.url,
            status="completed",
            dry_run=True,
            started_at=started_at,
            ended_at=started_at,
            duration_ms=0,
            message="dry-run",
        )
        return RunOutcome(scope=scope, instance=instance, run=run, command=command)

    instance = replace(
        instance,
        status="running",
        running=True,
        run_count=instance.run_count + 1,
        last_run_at=started_at,
        updated_at=started_at,
    )
    save_instance(path, instance)

    run = create_run(
        scope,
        instance_id=instance.id,
        instance_name=instance.name,
        target=instance.target,
        source_url=instance.source.url,
        status="running",
        dry_run=False,
        started_at=started_at,
    )
    run_file = run_path(scope, run.id)

    t0 = time.monotonic()
    error: str | None = None
    try:
        output = await launcher(cmd)
    except ExecutionError as e:
        error = str(e)
        output = ""

    ended_at = utc_now()
    run = replace(
        run,
        status="failed" if error else "completed",
        ended_at=ended_at,
        duration_ms=int((time.monotonic() - t0) * 1000),
        message=error or output or None,
    )
    save_run(run_file, run)

    if error:
        instance = replace(instance, status="error", running=False, updated_at=ended_at)
        save_instance(path, instance)
        logger.error("Run %s of %s failed: %s", run.id, instance.name, error)
    else:
        logger.info("Run %s of %s completed in %dms", run.id, instance.name, run.duration_ms)

    return RunOutcome(scope=scope, instance=instance, run=run, command=command, error=error)
