"""Shared fixtures: an isolated, initialized tenancy root per test."""

from __future__ import annotations

from pathlib import Path

import pytest

from acs.state.records import InitResult
from acs.state.scope import Scope, resolve_scope
from acs.state.tenancy import initialize_state


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch, tmp_path: Path):
    for key in ["ACS_HOME", "ACS_TARGET", "ACS_IMAGE", "ACS_SWARM_NAMESPACE", "ACS_LOG_LEVEL"]:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def root(tmp_path: Path) -> Path:
    return tmp_path / "acs"


@pytest.fixture
def initialized(root: Path) -> InitResult:
    return initialize_state("acme", root)


@pytest.fixture
def scope(initialized: InitResult) -> Scope:
    return resolve_scope(initialized.root)
