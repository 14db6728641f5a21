"""Tests for tenancy root resolution and path layout."""

from __future__ import annotations

from pathlib import Path

from acs.state.layout import get_state_layout, layout_for, resolve_root


class TestResolveRoot:
    def test_explicit_wins(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("ACS_HOME", str(tmp_path / "from-env"))
        assert resolve_root(tmp_path / "explicit") == (tmp_path / "explicit").resolve()

    def test_env_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("ACS_HOME", str(tmp_path / "from-env"))
        assert resolve_root() == (tmp_path / "from-env").resolve()

    def test_default_under_home(self, tmp_path: Path):
        assert resolve_root() == Path.home() / ".acs"
        assert resolve_root().parent == tmp_path / "home"

    def test_empty_explicit_falls_through(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("ACS_HOME", str(tmp_path / "from-env"))
        assert resolve_root("") == (tmp_path / "from-env").resolve()


class TestLayout:
    def test_singletons(self, tmp_path: Path):
        layout = layout_for(tmp_path)
        assert layout.manifest_path == tmp_path / "manifest.json"
        assert layout.context_path == tmp_path / "context.json"
        assert layout.organization_path == tmp_path / "auth" / "organization.json"
        assert layout.credentials_path == tmp_path / "auth" / "credentials.json"

    def test_environment_paths(self, tmp_path: Path):
        layout = layout_for(tmp_path)
        env_dir = tmp_path / "environments" / "development"
        assert layout.environment_path("development") == env_dir / "environment.json"
        assert layout.projects_dir("development") == env_dir / "projects"

    def test_project_paths(self, tmp_path: Path):
        layout = layout_for(tmp_path)
        project_dir = tmp_path / "environments" / "production" / "projects" / "prj_default"
        assert layout.project_path("production", "prj_default") == project_dir / "project.json"
        assert layout.instances_dir("production", "prj_default") == project_dir / "instances"
        assert layout.runs_dir("production", "prj_default") == project_dir / "runs"

    def test_no_io(self, tmp_path: Path):
        layout = get_state_layout(tmp_path / "missing")
        assert not layout.root.exists()
        layout.project_path("development", "x")
        assert not layout.root.exists()
