"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from acs.config import load_config
from acs.errors import ConfigError


class TestConfig:
    def test_defaults(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_config()
        assert config.runtime.target == "docker"
        assert config.runtime.image is None
        assert config.runtime.command == "echo"
        assert config.runtime.args == ["acs runtime started"]
        assert config.runtime.swarm.namespace == "default"
        assert config.home is None
        assert config.source is None

    def test_env_override(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("ACS_TARGET", "swarm")
        monkeypatch.setenv("ACS_IMAGE", "ghcr.io/acme/agent")
        monkeypatch.setenv("ACS_SWARM_NAMESPACE", "team-a")

        config = load_config()
        assert config.runtime.target == "swarm"
        assert config.runtime.image == "ghcr.io/acme/agent"
        assert config.runtime.swarm.namespace == "team-a"

    def test_toml_file(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        toml_path = tmp_path / "custom.toml"
        toml_path.write_text("""
log_level = "INFO"

[runtime]
target = "swarm"
image = "img"
command = "agent"
args = ["--serve"]

[runtime.swarm]
namespace = "ops"
context = "prod"
""")
        config = load_config(toml_path)
        assert config.runtime.target == "swarm"
        assert config.runtime.command == "agent"
        assert config.runtime.args == ["--serve"]
        assert config.runtime.swarm.namespace == "ops"
        assert config.runtime.swarm.context == "prod"
        assert config.log_level == "INFO"
        assert config.source == toml_path

    def test_discovers_cwd_file(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "acs.toml").write_text('[runtime]\nimage = "from-cwd"\n')
        assert load_config().runtime.image == "from-cwd"

    def test_discovers_home_file(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        home = tmp_path / "tenancy"
        home.mkdir()
        (home / "acs.toml").write_text('[runtime]\nimage = "from-home"\n')
        monkeypatch.setenv("ACS_HOME", str(home))
        config = load_config()
        assert config.runtime.image == "from-home"
        assert config.home == home

    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("ACS_TARGET", "docker")
        toml_path = tmp_path / "acs.toml"
        toml_path.write_text('[runtime]\ntarget = "swarm"\n')
        assert load_config(toml_path).runtime.target == "docker"  # env wins

    def test_explicit_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.toml")

    def test_invalid_target(self, tmp_path: Path):
        toml_path = tmp_path / "acs.toml"
        toml_path.write_text('[runtime]\ntarget = "kubernetes"\n')
        with pytest.raises(ConfigError, match="runtime.target"):
            load_config(toml_path)

    def test_invalid_args(self, tmp_path: Path):
        toml_path = tmp_path / "acs.toml"
        toml_path.write_text('[runtime]\nargs = "not-a-list"\n')
        with pytest.raises(ConfigError, match="runtime.args"):
            load_config(toml_path)

    def test_malformed_toml(self, tmp_path: Path):
        toml_path = tmp_path / "acs.toml"
        toml_path.write_text("[runtime\n")
        with pytest.raises(ConfigError):
            load_config(toml_path)

    def test_runtime_not_a_table(self, tmp_path: Path):
        toml_path = tmp_path / "acs.toml"
        toml_path.write_text('runtime = "x"\n')
        with pytest.raises(ConfigError, match="runtime must be a table"):
            load_config(toml_path)

    def test_swarm_not_a_table(self, tmp_path: Path):
        toml_path = tmp_path / "acs.toml"
        toml_path.write_text("[runtime]\nswarm = 1\n")
        with pytest.raises(ConfigError, match="runtime.swarm must be a table"):
            load_config(toml_path)
