"""Runtime instance registry: naming, creation, lookup, listing."""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from pathlib import Path
from urllib.parse import urlparse

from acs.errors import DuplicateNameError, InvalidNameError
from acs.state import store
from acs.state.layout import layout_for
from acs.state.records import InstanceSource, Project, RuntimeInstance, new_id, utc_now
from acs.state.scope import Scope

logger = logging.getLogger(__name__)

_FALLBACK_REPOSITORY = "harness"
_GIT_SUFFIX_RE = re.compile(r"\.git$", re.IGNORECASE)
_NAME_INVALID_RE = re.compile(r"[^a-z0-9-]+")


# ── Name derivation ───────────────────────────────────────


def sanitize_name(value: str) -> str:
    """Lower-case, collapse runs of characters outside [a-z0-9-] into '-', trim '-'."""
    return _NAME_INVALID_RE.sub("-", value.strip().lower()).strip("-")


def parse_repository_name(source_url: str) -> str:
    """Repository name from a source URL: second path segment without ``.git``.

    Anything without a URL scheme, or with fewer than two path segments, falls
    back to the last non-empty '/'-separated component.
    """
    parsed = urlparse(source_url)
    if parsed.scheme:
        segments = [s for s in parsed.path.split("/") if s]
        if len(segments) >= 2:
            return _GIT_SUFFIX_RE.sub("", segments[1])

    components = [c for c in source_url.split("/") if c]
    if not components:
        return _FALLBACK_REPOSITORY
    return _GIT_SUFFIX_RE.sub("", components[-1])


def next_auto_name(base: str, taken: set[str]) -> str:
    """Smallest free ``base-n`` for n = 1, 2, ..."""
    suffix = 1
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"


# ── Registry ──────────────────────────────────────────────


def list_instances(scope: Scope) -> list[tuple[Path, RuntimeInstance]]:
    """All instances in scope, sorted by name."""
    entries = store.list_records(scope.instances_dir, RuntimeInstance)
    return sorted(entries, key=lambda item: item[1].name)


def find_instance_by_name(scope: Scope, name: str) -> tuple[Path, RuntimeInstance] | None:
    for path, record in list_instances(scope):
        if record.name == name:
            return path, record
    return None


def find_instance_by_id(scope: Scope, instance_id: str) -> tuple[Path, RuntimeInstance] | None:
    for path, record in list_instances(scope):
        if record.id == instance_id:
            return path, record
    return None


def save_instance(path: Path, record: RuntimeInstance) -> None:
    store.write_record(path, record)


def recount_instances(scope: Scope) -> Project:
    """Recompute the project's cached runtimeCount from the instances directory."""
    count = len(store.list_records(scope.instances_dir, RuntimeInstance))
    project = replace(scope.project, runtime_count=count, updated_at=utc_now())
    store.write_record(
        layout_for(scope.root).project_path(scope.environment, scope.project_id), project
    )
    return project


def create_instance(
    scope: Scope,
    source_url: str,
    name: str | None = None,
    target: str = "docker",
) -> RuntimeInstance:
    """Register a new runtime instance.

    Without an explicit name the repository name is used, suffixed with the
    smallest free ``-n`` once it is taken. An explicit name that is taken is
    an error; it is never suffixed.
    """
    taken = {record.name for _, record in list_instances(scope)}
    repository = parse_repository_name(source_url)
    base = sanitize_name(name if name else repository)

    if not base:
        raise InvalidNameError("Could not derive a valid runtime name from source. Provide --name.")

    if name:
        if base in taken:
            raise DuplicateNameError(base, scope.label)
        runtime_name = base
    elif base in taken:
        runtime_name = next_auto_name(base, taken)
    else:
        runtime_name = base

    now = utc_now()
    record = RuntimeInstance(
        id=new_id("rtm"),
        name=runtime_name,
        environment=scope.environment,
        project_id=scope.project_id,
        target=target,
        source=InstanceSource(type="github", url=source_url, repository=repository),
        status="created",
        running=False,
        created_at=now,
        updated_at=now,
        run_count=0,
    )

    store.write_record(scope.instances_dir / f"{record.id}.json", record)
    logger.info("Runtime instance created: %s (%s) in %s", record.name, record.id, scope.label)

    # The instance file is committed; a failure here leaves the count stale.
    recount_instances(scope)
    return record
