"""Tests for server configuration loading."""

import os
from pathlib import Path

import pytest

from cloudapi_mcp.config import (
    DEFAULT_CRASHLYTICS_ORIGIN,
    DEFAULT_SERVICE_USAGE_ORIGIN,
    ServerConfig,
    get_config,
    set_config,
)

TOML_CONTENT = """
[logging]
level = "debug"
structured = false

[server]
name = "cloudapi-test"
features = ["core"]

[project]
id = "toml-project"

[api]
service_usage_origin = "https://su.example/"
timeout = 12

[enablement]
auto_enable = false
configstore_path = "~/custom-store.json"
"""


@pytest.fixture
def clean_cwd(tmp_path: Path):
    original_cwd = os.getcwd()
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(original_cwd)


class TestServerConfig:
    def test_defaults(self, clean_cwd):
        config = ServerConfig.from_env()

        assert config.log_level == "INFO"
        assert config.project_id is None
        assert config.features == []
        assert config.api.service_usage_origin == DEFAULT_SERVICE_USAGE_ORIGIN
        assert config.api.crashlytics_origin == DEFAULT_CRASHLYTICS_ORIGIN
        assert config.enablement.auto_enable is True

    def test_toml_file(self, clean_cwd, monkeypatch):
        monkeypatch.delenv("CLOUDAPI_MCP_CONFIGSTORE_PATH")
        (clean_cwd / "cloudapi-mcp.toml").write_text(TOML_CONTENT)

        config = ServerConfig.from_env()

        assert config.log_level == "DEBUG"
        assert config.structured_logging is False
        assert config.server_name == "cloudapi-test"
        assert config.features == ["core"]
        assert config.project_id == "toml-project"
        assert config.api.service_usage_origin == "https://su.example"
        assert config.api.crashlytics_origin == DEFAULT_CRASHLYTICS_ORIGIN
        assert config.api.timeout == 12.0
        assert config.enablement.auto_enable is False
        assert config.enablement.get_configstore_path() == Path.home() / "custom-store.json"

    def test_env_overrides_toml(self, clean_cwd, monkeypatch):
        (clean_cwd / "cloudapi-mcp.toml").write_text(TOML_CONTENT)
        monkeypatch.setenv("CLOUDAPI_MCP_PROJECT", " env-project ")
        monkeypatch.setenv("CLOUDAPI_MCP_FEATURES", "core, crashlytics")
        monkeypatch.setenv("CLOUDAPI_MCP_AUTO_ENABLE", "true")
        monkeypatch.setenv("CLOUDAPI_MCP_API_TIMEOUT", "not-a-number")
        monkeypatch.setenv("CLOUDAPI_MCP_ACCESS_TOKEN", "ya29.secret")

        config = ServerConfig.from_env()

        assert config.project_id == "env-project"
        assert config.features == ["core", "crashlytics"]
        assert config.enablement.auto_enable is True
        assert config.api.timeout == 12.0
        assert config.access_token == "ya29.secret"
        assert "ya29.secret" not in repr(config)

    def test_explicit_config_file(self, clean_cwd, tmp_path, monkeypatch):
        path = tmp_path / "elsewhere.toml"
        path.write_text('[project]\nid = "from-file"\n')
        monkeypatch.setenv("CLOUDAPI_MCP_CONFIG_FILE", str(path))

        assert ServerConfig.from_env().project_id == "from-file"

    def test_missing_config_file_keeps_defaults(self, clean_cwd):
        config = ServerConfig.from_env(config_file=str(clean_cwd / "nope.toml"))
        assert config.log_level == "INFO"

    def test_feature_enabled(self):
        assert ServerConfig().feature_enabled("crashlytics") is True
        config = ServerConfig(features=["core"])
        assert config.feature_enabled("core") is True
        assert config.feature_enabled("crashlytics") is False

    def test_global_config(self, clean_cwd):
        custom = ServerConfig(project_id="global")
        set_config(custom)
        assert get_config() is custom
