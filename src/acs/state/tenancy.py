"""One-time bootstrap of a tenancy root.

Creates the organization identity, its API credential, both environments,
a default project per environment and the initial current context.
"""

from __future__ import annotations

import hashlib
import logging
import os
import platform
import secrets
import shutil
from pathlib import Path

import psutil

from acs.errors import AlreadyInitializedError
from acs.state import store
from acs.state.layout import get_state_layout
from acs.state.records import (
    DEFAULT_PROJECT_ID,
    SCHEMA_VERSION,
    Credential,
    CurrentContext,
    Environment,
    InitResult,
    MachineProfile,
    Manifest,
    Organization,
    ResourcePolicy,
    new_id,
    utc_now,
)
from acs.state.scope import create_project, write_context

logger = logging.getLogger(__name__)

_API_KEY_PREFIX = "acs_sk_"
_CREDENTIALS_MODE = 0o600
_AUTH_DIR_MODE = 0o700

# environment name -> (max cpu %, max memory %)
_RESOURCE_POLICIES = {
    "development": (80, 80),
    "production": (90, 90),
}


def generate_api_key() -> str:
    return _API_KEY_PREFIX + secrets.token_urlsafe(32)


def key_fingerprint(api_key: str) -> str:
    """Non-secret key id: ``key_`` + first 16 hex chars of sha256(api_key)."""
    digest = hashlib.sha256(api_key.encode("utf-8")).hexdigest()
    return f"key_{digest[:16]}"


def capture_machine_profile(captured_at: str) -> MachineProfile:
    """Snapshot of the host this tenancy was initialized on."""
    memory = psutil.virtual_memory()
    try:
        load_1m = psutil.getloadavg()[0]
    except (AttributeError, OSError):
        load_1m = 0.0
    return MachineProfile(
        captured_at=captured_at,
        hostname=platform.node(),
        platform=platform.system().lower(),
        arch=platform.machine(),
        release=platform.release(),
        cpu_count=psutil.cpu_count() or 0,
        cpu_model=platform.processor() or "unknown",
        total_memory_bytes=memory.total,
        free_memory_bytes=memory.available,
        load_average_1m=load_1m,
    )


def _environment_record(
    name: str, projects_dir: Path, created_at: str, profile: MachineProfile | None = None
) -> Environment:
    cpu, mem = _RESOURCE_POLICIES[name]
    return Environment(
        name=name,
        created_at=created_at,
        default_target="docker",
        projects_directory=str(projects_dir),
        default_project_id=DEFAULT_PROJECT_ID,
        resource_policy=ResourcePolicy(max_cpu_percent=cpu, max_memory_percent=mem),
        machine_profile=profile,
    )


def initialize_state(
    org_name: str, root: str | Path | None = None, force: bool = False
) -> InitResult:
    """Create a fresh tenancy root.

    With ``force`` an existing root is deleted recursively first. That is
    irreversible. Without it, an initialized root raises AlreadyInitializedError
    and nothing is touched.
    """
    layout = get_state_layout(root)
    already_initialized = store.exists(layout.manifest_path)

    if already_initialized and not force:
        raise AlreadyInitializedError(layout.root)
    if already_initialized:
        logger.warning("Reinitializing: removing %s", layout.root)
        shutil.rmtree(layout.root)

    created_at = utc_now()
    organization_id = new_id("org")
    api_key = generate_api_key()

    organization = Organization(
        id=organization_id,
        name=org_name,
        key_id=key_fingerprint(api_key),
        created_at=created_at,
    )

    layout.auth_dir.mkdir(parents=True, exist_ok=True)
    os.chmod(layout.auth_dir, _AUTH_DIR_MODE)

    store.write_record(
        layout.manifest_path,
        Manifest(
            schema_version=SCHEMA_VERSION,
            initialized_at=created_at,
            organization_id=organization_id,
        ),
    )
    store.write_record(layout.organization_path, organization)
    store.write_record(
        layout.credentials_path,
        Credential(api_key=api_key, created_at=created_at),
        mode=_CREDENTIALS_MODE,
    )

    store.write_record(
        layout.environment_path("development"),
        _environment_record(
            "development",
            layout.projects_dir("development"),
            created_at,
            profile=capture_machine_profile(created_at),
        ),
    )
    store.write_record(
        layout.environment_path("production"),
        _environment_record("production", layout.projects_dir("production"), created_at),
    )

    for env in ("development", "production"):
        create_project(layout.root, env, DEFAULT_PROJECT_ID, "default", created_at=created_at)
        (layout.projects_dir(env) / ".gitkeep").touch()

    write_context(
        layout.root,
        CurrentContext(
            environment="production", project_id=DEFAULT_PROJECT_ID, updated_at=created_at
        ),
    )

    logger.info(
        "Tenancy %s at %s (org=%s, key=%s)",
        "reinitialized" if already_initialized else "initialized",
        layout.root,
        organization.id,
        organization.key_id,
    )
    return InitResult(
        root=layout.root,
        organization=organization,
        api_key=api_key,
        overwritten=already_initialized,
    )
