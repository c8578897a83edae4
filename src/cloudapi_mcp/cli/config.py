"""CLI configuration and project resolution.

Provides configuration handling for the cloudapi CLI, leveraging the
shared cloudapi_mcp.config module.
"""

from typing import Optional

from cloudapi_mcp.config import ServerConfig, get_config as get_server_config
from cloudapi_mcp.core.enablement import ApiEnablementChecker, get_enablement_checker


class CLIContext:
    """CLI execution context with resolved configuration.

    Holds the effective configuration for a CLI command, including
    any overrides from command-line options.
    """

    def __init__(
        self,
        project: Optional[str] = None,
        server_config: Optional[ServerConfig] = None,
    ):
        """Initialize CLI context.

        Args:
            project: Explicit project override from --project.
            server_config: Optional server config (uses global if not provided).
        """
        self._project_override = project
        self._config = server_config or get_server_config()

    @property
    def project_id(self) -> Optional[str]:
        """Get the resolved project.

        Resolution order:
        1. CLI --project option (highest priority)
        2. ServerConfig.project_id (from env/TOML)
        """
        if self._project_override:
            return self._project_override.strip()
        return self._config.project_id

    @property
    def config(self) -> ServerConfig:
        """Get the underlying server configuration."""
        return self._config

    @property
    def checker(self) -> ApiEnablementChecker:
        return get_enablement_checker()

    def require_project(self) -> str:
        """Get the project, raising if none is configured.

        Raises:
            ValueError: If no project could be resolved.
        """
        project = self.project_id
        if not project:
            raise ValueError(
                "No project specified. "
                "Use --project or set CLOUDAPI_MCP_PROJECT environment variable."
            )
        return project


def create_context(project: Optional[str] = None) -> CLIContext:
    """Create a CLI context with optional overrides."""
    return CLIContext(project=project)
