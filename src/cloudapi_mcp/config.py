"""
Server configuration for cloudapi-mcp.

Supports configuration via:
1. Environment variables (highest priority)
2. TOML config file (cloudapi-mcp.toml)
3. Default values (lowest priority)

Environment variables:
- CLOUDAPI_MCP_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
- CLOUDAPI_MCP_STRUCTURED_LOGGING: Emit JSON-style log lines (true/false)
- CLOUDAPI_MCP_PROJECT: Default project ID for tools and CLI commands
- CLOUDAPI_MCP_ACCESS_TOKEN: OAuth access token sent as a bearer token
- CLOUDAPI_MCP_FEATURES: Comma-separated tool feature groups to register
- CLOUDAPI_MCP_SERVICE_USAGE_ORIGIN: Service Usage API origin
- CLOUDAPI_MCP_CRASHLYTICS_ORIGIN: Crashlytics API origin
- CLOUDAPI_MCP_API_TIMEOUT: HTTP timeout in seconds
- CLOUDAPI_MCP_AUTO_ENABLE: Whether tools may enable missing APIs (true/false)
- CLOUDAPI_MCP_CONFIGSTORE_PATH: Path to the persistent configstore JSON file
- CLOUDAPI_MCP_CONFIG_FILE: Path to TOML config file

The access token is treated as opaque: it is never logged and never
refreshed. Obtain one with ``gcloud auth print-access-token``.
"""

import os
import logging
from dataclasses import dataclass, field
from importlib.metadata import version as get_package_version, PackageNotFoundError
from pathlib import Path
from typing import Optional, List, Dict, Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback


logger = logging.getLogger(__name__)


def _get_version() -> str:
    """Get package version from metadata (single source of truth: pyproject.toml)."""
    try:
        return get_package_version("cloudapi-mcp")
    except PackageNotFoundError:
        return "0.3.0"  # Fallback for dev without install


_PACKAGE_VERSION = _get_version()

DEFAULT_SERVICE_USAGE_ORIGIN = "https://serviceusage.googleapis.com"
DEFAULT_CRASHLYTICS_ORIGIN = "https://firebasecrashlytics.googleapis.com"


@dataclass
class ApiConfig:
    """Configuration for upstream REST endpoints.

    Attributes:
        service_usage_origin: Origin of the Service Usage API
        crashlytics_origin: Origin of the Crashlytics API
        timeout: Per-request HTTP timeout in seconds
    """

    service_usage_origin: str = DEFAULT_SERVICE_USAGE_ORIGIN
    crashlytics_origin: str = DEFAULT_CRASHLYTICS_ORIGIN
    timeout: float = 30.0

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "ApiConfig":
        """Create config from TOML dict (typically [api] section).

        Args:
            data: Dict from TOML parsing

        Returns:
            ApiConfig instance
        """
        return cls(
            service_usage_origin=str(
                data.get("service_usage_origin", DEFAULT_SERVICE_USAGE_ORIGIN)
            ).rstrip("/"),
            crashlytics_origin=str(
                data.get("crashlytics_origin", DEFAULT_CRASHLYTICS_ORIGIN)
            ).rstrip("/"),
            timeout=float(data.get("timeout", 30.0)),
        )


@dataclass
class EnablementConfig:
    """Configuration for API enablement checks.

    Attributes:
        auto_enable: Allow tools to enable missing APIs. When False the
            tools report a console link instead.
        configstore_path: JSON file backing the enablement cache
            (default: ~/.cloudapi-mcp/configstore.json)
    """

    auto_enable: bool = True
    configstore_path: str = ""  # Empty string means use default

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "EnablementConfig":
        """Create config from TOML dict (typically [enablement] section)."""
        return cls(
            auto_enable=_parse_bool(data.get("auto_enable", True)),
            configstore_path=str(data.get("configstore_path", "")),
        )

    def get_configstore_path(self) -> Path:
        """Get the resolved configstore path.

        Returns:
            Path to the configstore JSON file
        """
        if self.configstore_path:
            return Path(self.configstore_path).expanduser()
        return Path.home() / ".cloudapi-mcp" / "configstore.json"


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _parse_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item).strip() for item in value if str(item).strip()]


@dataclass
class ServerConfig:
    """Server configuration with support for env vars and TOML overrides."""

    # Logging configuration
    log_level: str = "INFO"
    structured_logging: bool = True

    # Server configuration
    server_name: str = "cloudapi-mcp"
    server_version: str = field(default_factory=lambda: _PACKAGE_VERSION)

    # Project and credentials
    project_id: Optional[str] = None
    access_token: Optional[str] = field(default=None, repr=False)

    # Tool feature groups to register (empty = all)
    features: List[str] = field(default_factory=list)

    # Upstream API configuration
    api: ApiConfig = field(default_factory=ApiConfig)

    # Enablement configuration
    enablement: EnablementConfig = field(default_factory=EnablementConfig)

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "ServerConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML config file
        3. Default values
        """
        config = cls()

        # Load TOML config if available
        toml_path = config_file or os.environ.get("CLOUDAPI_MCP_CONFIG_FILE")
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            # Try default locations
            for default_path in ["cloudapi-mcp.toml", ".cloudapi-mcp.toml"]:
                if Path(default_path).exists():
                    config._load_toml(Path(default_path))
                    break

        # Override with environment variables
        config._load_env()

        return config

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            # Logging settings
            if "logging" in data:
                log = data["logging"]
                if "level" in log:
                    self.log_level = str(log["level"]).upper()
                if "structured" in log:
                    self.structured_logging = _parse_bool(log["structured"])

            # Server settings
            if "server" in data:
                srv = data["server"]
                if "name" in srv:
                    self.server_name = str(srv["name"])
                if "version" in srv:
                    self.server_version = str(srv["version"])
                if "features" in srv:
                    self.features = _parse_list(srv["features"])

            # Project settings
            if "project" in data:
                proj = data["project"]
                if "id" in proj:
                    self.project_id = str(proj["id"])
                if "access_token" in proj:
                    self.access_token = str(proj["access_token"])

            if "api" in data:
                self.api = ApiConfig.from_toml_dict(data["api"])

            if "enablement" in data:
                self.enablement = EnablementConfig.from_toml_dict(data["enablement"])

        except Exception as e:
            logger.error(f"Error loading config file {path}: {e}")

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        # Log level
        if level := os.environ.get("CLOUDAPI_MCP_LOG_LEVEL"):
            self.log_level = level.upper()
        if structured := os.environ.get("CLOUDAPI_MCP_STRUCTURED_LOGGING"):
            self.structured_logging = _parse_bool(structured)

        # Project and credentials
        if project := os.environ.get("CLOUDAPI_MCP_PROJECT"):
            self.project_id = project.strip()
        if token := os.environ.get("CLOUDAPI_MCP_ACCESS_TOKEN"):
            self.access_token = token.strip()

        # Feature groups
        if features := os.environ.get("CLOUDAPI_MCP_FEATURES"):
            self.features = _parse_list(features)

        # API settings
        if origin := os.environ.get("CLOUDAPI_MCP_SERVICE_USAGE_ORIGIN"):
            self.api.service_usage_origin = origin.rstrip("/")
        if origin := os.environ.get("CLOUDAPI_MCP_CRASHLYTICS_ORIGIN"):
            self.api.crashlytics_origin = origin.rstrip("/")
        if timeout := os.environ.get("CLOUDAPI_MCP_API_TIMEOUT"):
            try:
                self.api.timeout = float(timeout)
            except ValueError:
                pass

        # Enablement settings
        if auto_enable := os.environ.get("CLOUDAPI_MCP_AUTO_ENABLE"):
            self.enablement.auto_enable = _parse_bool(auto_enable)
        if store_path := os.environ.get("CLOUDAPI_MCP_CONFIGSTORE_PATH"):
            self.enablement.configstore_path = store_path

    def feature_enabled(self, feature: str) -> bool:
        """Check whether a tool feature group should be registered."""
        if not self.features:
            return True
        return feature in self.features

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        level = getattr(logging, self.log_level, logging.INFO)

        if self.structured_logging:
            # JSON-style structured logging
            formatter = logging.Formatter(
                '{"timestamp":"%(asctime)s","level":"%(levelname)s",'
                '"logger":"%(name)s","message":"%(message)s"}'
            )
        else:
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )

        # MCP stdio transport owns stdout, so logs go to stderr
        handler = logging.StreamHandler()
        handler.setFormatter(formatter)

        root_logger = logging.getLogger("cloudapi_mcp")
        root_logger.setLevel(level)
        root_logger.addHandler(handler)


# Global configuration instance
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
    return _config


def set_config(config: ServerConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
