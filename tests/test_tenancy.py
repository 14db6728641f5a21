"""Tests for tenancy initialization."""

from __future__ import annotations

import hashlib
import stat
from pathlib import Path

import pytest

from acs.errors import AlreadyInitializedError
from acs.state import store
from acs.state.layout import layout_for
from acs.state.records import (
    Credential,
    CurrentContext,
    Environment,
    Manifest,
    Organization,
    Project,
)
from acs.state.tenancy import generate_api_key, initialize_state, key_fingerprint


class TestKeys:
    def test_api_key_prefix_and_entropy(self):
        a, b = generate_api_key(), generate_api_key()
        assert a.startswith("acs_sk_")
        assert len(a) > 40
        assert a != b

    def test_fingerprint(self):
        key = "acs_sk_example"
        expected = "key_" + hashlib.sha256(key.encode()).hexdigest()[:16]
        assert key_fingerprint(key) == expected


class TestInitialize:
    def test_writes_all_records(self, root: Path):
        result = initialize_state("acme", root)
        layout = layout_for(result.root)

        manifest = store.read_record(layout.manifest_path, Manifest)
        assert manifest.schema_version == 1
        assert manifest.organization_id == result.organization.id

        org = store.read_record(layout.organization_path, Organization)
        assert org.name == "acme"
        assert org.id.startswith("org_") and len(org.id) == 20
        assert org == result.organization

        for env in ("development", "production"):
            project = store.read_record(layout.project_path(env, "prj_default"), Project)
            assert project.name == "default"
            assert project.runtime_count == 0
            assert layout.instances_dir(env, "prj_default").is_dir()
            assert layout.runs_dir(env, "prj_default").is_dir()
            assert (layout.projects_dir(env) / ".gitkeep").exists()

        context = store.read_record(layout.context_path, CurrentContext)
        assert (context.environment, context.project_id) == ("production", "prj_default")

    def test_credential_fingerprint_and_permissions(self, root: Path):
        result = initialize_state("acme", root)
        layout = layout_for(result.root)
        credential = store.read_record(layout.credentials_path, Credential)
        assert credential.api_key == result.api_key
        assert result.organization.key_id == key_fingerprint(result.api_key)
        assert stat.S_IMODE(layout.credentials_path.stat().st_mode) == 0o600
        assert stat.S_IMODE(layout.auth_dir.stat().st_mode) == 0o700
        # The secret appears nowhere but the credential file
        assert result.api_key not in layout.organization_path.read_text()
        assert result.api_key not in layout.manifest_path.read_text()

    def test_environments(self, root: Path):
        result = initialize_state("acme", root)
        layout = layout_for(result.root)
        dev = store.read_record(layout.environment_path("development"), Environment)
        prod = store.read_record(layout.environment_path("production"), Environment)

        assert dev.machine_profile is not None
        assert dev.machine_profile.cpu_count >= 1
        assert dev.resource_policy.max_cpu_percent == 80
        assert prod.machine_profile is None
        assert prod.resource_policy.max_memory_percent == 90
        assert prod.default_project_id == "prj_default"
        assert prod.projects_directory == str(layout.projects_dir("production"))

    def test_not_overwritten_without_force(self, root: Path):
        first = initialize_state("acme", root)
        layout = layout_for(first.root)
        before = {p: p.read_bytes() for p in first.root.rglob("*") if p.is_file()}

        with pytest.raises(AlreadyInitializedError):
            initialize_state("other", root)

        after = {p: p.read_bytes() for p in first.root.rglob("*") if p.is_file()}
        assert before == after
        assert store.read_record(layout.organization_path, Organization).name == "acme"

    def test_force_reinitializes(self, root: Path):
        first = initialize_state("acme", root)
        stray = first.root / "environments" / "production" / "projects" / "stray"
        stray.mkdir()

        second = initialize_state("globex", root, force=True)
        assert second.overwritten is True
        assert first.overwritten is False
        assert second.organization.id != first.organization.id
        assert second.api_key != first.api_key
        assert not stray.exists()
