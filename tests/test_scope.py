"""Tests for scope resolution, context and project records."""

from __future__ import annotations

from pathlib import Path

import pytest

from acs.errors import (
    ContextMissingError,
    DuplicateNameError,
    InvalidEnvironmentError,
    InvalidNameError,
    NotInitializedError,
    ProjectNotFoundError,
)
from acs.state.layout import layout_for
from acs.state.scope import (
    create_project,
    get_project,
    list_environments,
    list_projects,
    read_context,
    resolve_scope,
    set_context,
)


class TestResolveScope:
    def test_not_initialized(self, root: Path):
        with pytest.raises(NotInitializedError):
            resolve_scope(root)

    def test_context_missing(self, initialized):
        layout_for(initialized.root).context_path.unlink()
        with pytest.raises(ContextMissingError):
            resolve_scope(initialized.root)

    def test_defaults_from_context(self, initialized):
        scope = resolve_scope(initialized.root)
        assert (scope.environment, scope.project_id) == ("production", "prj_default")
        assert scope.project.id == "prj_default"
        assert scope.label == "production/prj_default"

    def test_follows_changed_context(self, initialized):
        set_context(initialized.root, "development", "prj_default")
        scope = resolve_scope(initialized.root)
        assert scope.environment == "development"

    def test_environment_override_wins(self, initialized):
        scope = resolve_scope(initialized.root, environment="development")
        assert (scope.environment, scope.project_id) == ("development", "prj_default")
        assert scope.context.environment == "production"

    def test_project_override_wins(self, initialized):
        create_project(initialized.root, "production", "prj_web", "web")
        scope = resolve_scope(initialized.root, project_id="prj_web")
        assert (scope.environment, scope.project_id) == ("production", "prj_web")

    def test_missing_project_is_not_created(self, initialized):
        with pytest.raises(ProjectNotFoundError) as exc:
            resolve_scope(initialized.root, project_id="prj_nope")
        assert exc.value.environment == "production"
        assert exc.value.project_id == "prj_nope"
        assert "prj_nope" in str(exc.value)
        assert not layout_for(initialized.root).project_dir("production", "prj_nope").exists()

    def test_invalid_environment(self, initialized):
        with pytest.raises(InvalidEnvironmentError):
            resolve_scope(initialized.root, environment="staging")

    def test_recreates_subdirectories(self, initialized):
        scope = resolve_scope(initialized.root)
        scope.runs_dir.rmdir()
        scope = resolve_scope(initialized.root)
        assert scope.runs_dir.is_dir()
        assert scope.instances_dir.is_dir()


class TestContext:
    def test_initial(self, initialized):
        context = read_context(initialized.root)
        assert (context.environment, context.project_id) == ("production", "prj_default")

    def test_set_requires_existing_project(self, initialized):
        with pytest.raises(ProjectNotFoundError):
            set_context(initialized.root, "development", "prj_nope")
        assert read_context(initialized.root).environment == "production"

    def test_set(self, initialized):
        create_project(initialized.root, "development", "prj_lab", "lab")
        set_context(initialized.root, "Development", "prj_lab")
        context = read_context(initialized.root)
        assert (context.environment, context.project_id) == ("development", "prj_lab")

    def test_read_not_initialized(self, root: Path):
        with pytest.raises(NotInitializedError):
            read_context(root)


class TestProjects:
    def test_list_environments(self, initialized):
        names = [env.name for env in list_environments(initialized.root)]
        assert names == ["development", "production"]

    def test_list_sorted_and_skips_non_projects(self, initialized):
        create_project(initialized.root, "production", "prj_b", "b")
        create_project(initialized.root, "production", "prj_a", "a")
        projects = list_projects("production", initialized.root)
        assert [p.id for p in projects] == ["prj_a", "prj_b", "prj_default"]

    def test_get_missing(self, initialized):
        assert get_project("production", "prj_nope", initialized.root) is None

    def test_create_duplicate(self, initialized):
        with pytest.raises(DuplicateNameError):
            create_project(initialized.root, "production", "prj_default", "again")

    def test_create_invalid_id(self, initialized):
        with pytest.raises(InvalidNameError):
            create_project(initialized.root, "production", "!!!", "bad")

    def test_create_sanitizes_id(self, initialized):
        project = create_project(initialized.root, "development", "My Project", "mine")
        assert project.id == "my-project"
        assert get_project("development", "my-project", initialized.root) == project
