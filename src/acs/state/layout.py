"""Fixed on-disk layout of a tenancy root. Pure path arithmetic, no I/O."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

EnvironmentName = Literal["development", "production"]

ENVIRONMENTS: tuple[EnvironmentName, ...] = ("development", "production")

_DEFAULT_HOME_DIR = ".acs"
_HOME_ENV_VAR = "ACS_HOME"


def resolve_root(explicit: str | Path | None = None) -> Path:
    """Resolve the tenancy root.

    Priority: explicit argument > $ACS_HOME > ~/.acs.
    """
    if explicit:
        return Path(explicit).expanduser().resolve()
    env_home = os.getenv(_HOME_ENV_VAR)
    if env_home:
        return Path(env_home).expanduser().resolve()
    return Path.home() / _DEFAULT_HOME_DIR


@dataclass(frozen=True)
class StateLayout:
    """All fixed paths below a tenancy root."""

    root: Path

    @property
    def auth_dir(self) -> Path:
        return self.root / "auth"

    @property
    def environments_dir(self) -> Path:
        return self.root / "environments"

    @property
    def manifest_path(self) -> Path:
        return self.root / "manifest.json"

    @property
    def context_path(self) -> Path:
        return self.root / "context.json"

    @property
    def organization_path(self) -> Path:
        return self.auth_dir / "organization.json"

    @property
    def credentials_path(self) -> Path:
        return self.auth_dir / "credentials.json"

    # ── Per-environment paths ─────────────────────────────────

    def environment_dir(self, environment: str) -> Path:
        return self.environments_dir / environment

    def environment_path(self, environment: str) -> Path:
        return self.environment_dir(environment) / "environment.json"

    def projects_dir(self, environment: str) -> Path:
        return self.environment_dir(environment) / "projects"

    def project_dir(self, environment: str, project_id: str) -> Path:
        return self.projects_dir(environment) / project_id

    def project_path(self, environment: str, project_id: str) -> Path:
        return self.project_dir(environment, project_id) / "project.json"

    def instances_dir(self, environment: str, project_id: str) -> Path:
        return self.project_dir(environment, project_id) / "instances"

    def runs_dir(self, environment: str, project_id: str) -> Path:
        return self.project_dir(environment, project_id) / "runs"


def layout_for(root: Path) -> StateLayout:
    return StateLayout(root=root)


def get_state_layout(explicit: str | Path | None = None) -> StateLayout:
    """Resolve the root, then derive its layout."""
    return layout_for(resolve_root(explicit))
