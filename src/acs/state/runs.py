"""Run registry: one append-only record per execution attempt."""

from __future__ import annotations

import logging
from pathlib import Path

from acs.state import store
from acs.state.records import Run, new_id
from acs.state.scope import Scope

logger = logging.getLogger(__name__)


def create_run(
    scope: Scope,
    *,
    instance_id: str,
    instance_name: str,
    target: str,
    source_url: str,
    status: str,
    dry_run: bool,
    started_at: str,
    ended_at: str | None = None,
    duration_ms: int | None = None,
    message: str | None = None,
) -> Run:
    record = Run(
        id=new_id("run"),
        instance_id=instance_id,
        instance_name=instance_name,
        environment=scope.environment,
        project_id=scope.project_id,
        target=target,
        source_url=source_url,
        status=status,
        dry_run=dry_run,
        started_at=started_at,
        ended_at=ended_at,
        duration_ms=duration_ms,
        message=message,
    )
    store.write_record(run_path(scope, record.id), record)
    logger.info("Run recorded: %s for %s (status=%s)", record.id, instance_name, status)
    return record


def run_path(scope: Scope, run_id: str) -> Path:
    return scope.runs_dir / f"{run_id}.json"


def list_runs(scope: Scope) -> list[tuple[Path, Run]]:
    """Most recent first."""
    entries = store.list_records(scope.runs_dir, Run)
    return sorted(entries, key=lambda item: item[1].started_at, reverse=True)


def find_run_by_id(scope: Scope, run_id: str) -> tuple[Path, Run] | None:
    if not run_id or "/" in run_id or run_id.startswith("."):
        return None
    path = run_path(scope, run_id)
    if not store.exists(path):
        return None
    return path, store.read_record(path, Run)


def save_run(path: Path, record: Run) -> None:
    store.write_record(path, record)
