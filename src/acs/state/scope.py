"""Scope resolution and the tenancy-level records around it.

Every instance and run operation goes through ``resolve_scope``. It never
creates a missing project: that is always reported as ProjectNotFoundError.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from acs.errors import (
    ContextMissingError,
    DuplicateNameError,
    InvalidEnvironmentError,
    InvalidNameError,
    NotInitializedError,
    ProjectNotFoundError,
)
from acs.state import store
from acs.state.layout import ENVIRONMENTS, get_state_layout
from acs.state.records import (
    CurrentContext,
    Environment,
    Manifest,
    Organization,
    Project,
    utc_now,
)

logger = logging.getLogger(__name__)

_PROJECT_ID_RE = re.compile(r"[^a-z0-9_-]+")


@dataclass(frozen=True)
class Scope:
    """A resolved (environment, project) pair and its directories."""

    root: Path
    context: CurrentContext
    environment: str
    project_id: str
    project: Project
    instances_dir: Path
    runs_dir: Path

    @property
    def label(self) -> str:
        return f"{self.environment}/{self.project_id}"


def validate_environment(value: str) -> str:
    """Normalize an environment name, rejecting anything but the fixed two."""
    normalized = value.strip().lower()
    if normalized not in ENVIRONMENTS:
        raise InvalidEnvironmentError(value)
    return normalized


def resolve_scope(
    root: str | Path | None = None,
    environment: str | None = None,
    project_id: str | None = None,
) -> Scope:
    """Determine the effective scope.

    Overrides win; whatever is omitted comes from the persisted current
    context. The instances/ and runs/ directories are created if missing.
    """
    layout = get_state_layout(root)

    if not store.exists(layout.manifest_path):
        raise NotInitializedError(layout.root)
    if not store.exists(layout.context_path):
        raise ContextMissingError(layout.root)

    context = store.read_record(layout.context_path, CurrentContext)
    env = validate_environment(environment) if environment else context.environment
    project_id = project_id or context.project_id

    project_path = layout.project_path(env, project_id)
    if not store.exists(project_path):
        raise ProjectNotFoundError(env, project_id)

    project = store.read_record(project_path, Project)
    instances_dir = layout.instances_dir(env, project_id)
    runs_dir = layout.runs_dir(env, project_id)
    instances_dir.mkdir(parents=True, exist_ok=True)
    runs_dir.mkdir(parents=True, exist_ok=True)

    logger.debug("Resolved scope %s/%s under %s", env, project_id, layout.root)
    return Scope(
        root=layout.root,
        context=context,
        environment=env,
        project_id=project_id,
        project=project,
        instances_dir=instances_dir,
        runs_dir=runs_dir,
    )


# ── Singletons ────────────────────────────────────────────


def read_manifest(root: str | Path | None = None) -> Manifest:
    return store.read_record(get_state_layout(root).manifest_path, Manifest)


def read_organization(root: str | Path | None = None) -> Organization:
    return store.read_record(get_state_layout(root).organization_path, Organization)


def read_context(root: str | Path | None = None) -> CurrentContext:
    layout = get_state_layout(root)
    if not store.exists(layout.manifest_path):
        raise NotInitializedError(layout.root)
    if not store.exists(layout.context_path):
        raise ContextMissingError(layout.root)
    return store.read_record(layout.context_path, CurrentContext)


def write_context(root: str | Path | None, context: CurrentContext) -> None:
    store.write_record(get_state_layout(root).context_path, context)


def set_context(
    root: str | Path | None, environment: str, project_id: str
) -> CurrentContext:
    """Point the current context at an existing project."""
    env = validate_environment(environment)
    if get_project(env, project_id, root) is None:
        raise ProjectNotFoundError(env, project_id)
    context = CurrentContext(environment=env, project_id=project_id, updated_at=utc_now())
    write_context(root, context)
    logger.info("Current context set to %s/%s", env, project_id)
    return context


# ── Environments ──────────────────────────────────────────


def read_environment(environment: str, root: str | Path | None = None) -> Environment:
    env = validate_environment(environment)
    return store.read_record(get_state_layout(root).environment_path(env), Environment)


def list_environments(root: str | Path | None = None) -> list[Environment]:
    return [read_environment(env, root) for env in ENVIRONMENTS]


# ── Projects ──────────────────────────────────────────────


def list_projects(environment: str, root: str | Path | None = None) -> list[Project]:
    """Projects of one environment, sorted by id."""
    layout = get_state_layout(root)
    projects_dir = layout.projects_dir(validate_environment(environment))
    if not projects_dir.is_dir():
        return []
    projects = []
    for entry in projects_dir.iterdir():
        project_path = entry / "project.json"
        if entry.is_dir() and store.exists(project_path):
            projects.append(store.read_record(project_path, Project))
    return sorted(projects, key=lambda p: p.id)


def get_project(
    environment: str, project_id: str, root: str | Path | None = None
) -> Project | None:
    layout = get_state_layout(root)
    project_path = layout.project_path(validate_environment(environment), project_id)
    if not store.exists(project_path):
        return None
    return store.read_record(project_path, Project)


def create_project(
    root: str | Path | None,
    environment: str,
    project_id: str,
    name: str,
    created_at: str | None = None,
) -> Project:
    """Create a project record with empty instances/ and runs/ directories."""
    env = validate_environment(environment)
    clean_id = _PROJECT_ID_RE.sub("-", project_id.strip().lower()).strip("-")
    if not clean_id:
        raise InvalidNameError(f'Invalid project id "{project_id}".')

    layout = get_state_layout(root)
    project_path = layout.project_path(env, clean_id)
    if store.exists(project_path):
        raise DuplicateNameError(clean_id, env, kind="Project")

    created_at = created_at or utc_now()
    layout.instances_dir(env, clean_id).mkdir(parents=True, exist_ok=True)
    layout.runs_dir(env, clean_id).mkdir(parents=True, exist_ok=True)

    project = Project(
        id=clean_id,
        name=name,
        environment=env,
        created_at=created_at,
        updated_at=created_at,
        runtime_count=0,
    )
    store.write_record(project_path, project)
    logger.info("Project created: %s/%s", env, clean_id)
    return project
