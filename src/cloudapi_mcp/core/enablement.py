"""API enablement checks with polling and bounded retries.

Before calling a Google API on a project, callers make sure the API is
turned on. ``ApiEnablementChecker.ensure`` checks the Service Usage API,
requests enablement if needed and polls until the API reports ENABLED or
the retry budget runs out:

    enable -> (sleep, check) x 13 -> enable -> (sleep, check) x 13 -> timeout

Positive results are cached in the configstore under ``apiEnablementCache``
so later checks skip the network entirely. Negative results are never
cached: APIs are often enabled out of band by a project admin. A stale
positive entry is harmless because disabling an API is rare, and the
eventual call fails with its own clear error.

Example usage:
    checker = get_enablement_checker()
    await checker.ensure("my-project", "firebasecrashlytics.googleapis.com")
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional
from urllib.parse import urlparse

from cloudapi_mcp.config import ServerConfig, get_config
from cloudapi_mcp.core.analytics import track_event
from cloudapi_mcp.core.api_client import ApiClient
from cloudapi_mcp.core.configstore import ConfigStore
from cloudapi_mcp.core.errors import (
    BillingRequiredError,
    CloudApiError,
    EnablementTimeoutError,
    is_billing_error,
    is_permission_error,
)
from cloudapi_mcp.core.observability import audit_log

logger = logging.getLogger(__name__)

API_ENABLEMENT_CACHE_KEY = "apiEnablementCache"
ENABLED_STATE = "ENABLED"

_PERMISSION_DENIED_PATTERN = re.compile(
    r"Permission denied to enable service \[([.a-zA-Z]+)\]"
)


@dataclass(frozen=True)
class PollSettings:
    """Timing budget for enable-and-wait.

    Attributes:
        poll_interval: Seconds to sleep before each status poll
        polls_before_retry: Polls after the first one before enabling again
        max_enable_attempts: Enable requests allowed per ``ensure`` call
    """

    poll_interval: float = 10.0
    polls_before_retry: int = 12
    max_enable_attempts: int = 2


POLL_SETTINGS = PollSettings()


def normalize_service_name(service: str) -> str:
    """Reduce a service given as a URL to its hostname.

    ``https://foo.googleapis.com/v1`` and ``foo.googleapis.com`` both
    become ``foo.googleapis.com``.
    """
    if service.startswith("http"):
        return urlparse(service).hostname or service
    return service


def parse_permission_denied_service(message: str) -> Optional[str]:
    """Extract the blocked service from a permission-denied error message.

    Returns:
        The service name, or None when the message has a different shape.
    """
    match = _PERMISSION_DENIED_PATTERN.search(message or "")
    if match and match.group(1):
        return match.group(1)
    return None


def enable_api_uri(project_id: str, service: str) -> str:
    """Console link for enabling an API by hand.

    Use instead of ``ensure`` where enabling APIs automatically is not
    wanted.
    """
    return f"https://console.cloud.google.com/apis/library/{service}?project={project_id}"


def billing_upgrade_uri(project_id: str) -> str:
    """Console page where a project owner upgrades the billing plan."""
    return f"https://console.firebase.google.com/project/{project_id}/usage/details"


class EnablementCache:
    """Positive-only cache of enabled APIs, keyed by project then service."""

    def __init__(self, store: ConfigStore):
        self._store = store

    def _read(self) -> Dict[str, Dict[str, bool]]:
        cache = self._store.get(API_ENABLEMENT_CACHE_KEY)
        return cache if isinstance(cache, dict) else {}

    def is_enabled(self, project_id: str, service: str) -> bool:
        project_cache = self._read().get(project_id)
        if not isinstance(project_cache, dict):
            return False
        return bool(project_cache.get(service))

    def mark_enabled(self, project_id: str, service: str) -> None:
        def _add(cache: Any) -> Dict[str, Dict[str, bool]]:
            cache = cache if isinstance(cache, dict) else {}
            project_cache = cache.get(project_id)
            if not isinstance(project_cache, dict):
                project_cache = cache[project_id] = {}
            project_cache[service] = True
            return cache

        self._store.update(API_ENABLEMENT_CACHE_KEY, _add)

    def entries(self) -> Dict[str, Dict[str, bool]]:
        return self._read()

    def clear(self, project_id: Optional[str] = None) -> int:
        """Drop cached entries.

        Args:
            project_id: Only drop entries for this project.

        Returns:
            Number of (project, service) entries removed.
        """
        removed = 0

        def _drop(cache: Any) -> Optional[Dict[str, Dict[str, bool]]]:
            nonlocal removed
            cache = cache if isinstance(cache, dict) else {}
            if project_id is None:
                removed = sum(len(services) for services in cache.values() if isinstance(services, dict))
                return None
            services = cache.pop(project_id, None)
            removed = len(services) if isinstance(services, dict) else 0
            return cache or None

        self._store.update(API_ENABLEMENT_CACHE_KEY, _drop)
        return removed


class ApiEnablementChecker:
    """Check and enable APIs on a project through the Service Usage API.

    Args:
        client: Client bound to the Service Usage origin, API version v1
        cache: Positive-only enablement cache
        settings: Poll timing budget (default: POLL_SETTINGS)
        sleep: Awaitable sleep used between polls
        track: Analytics hook called with ("api_enabled", params)
    """

    def __init__(
        self,
        client: ApiClient,
        cache: EnablementCache,
        *,
        settings: PollSettings = POLL_SETTINGS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        track: Callable[[str, Mapping[str, Any]], None] = track_event,
    ):
        self._client = client
        self._cache = cache
        self._settings = settings
        self._sleep = sleep
        self._track = track

    @property
    def cache(self) -> EnablementCache:
        return self._cache

    @staticmethod
    def _quota_headers(project_id: str) -> Dict[str, str]:
        return {"x-goog-quota-user": f"projects/{project_id}"}

    @staticmethod
    def _label(prefix: str, message: str) -> str:
        return f"{prefix}: {message}" if prefix else message

    async def check(
        self,
        project_id: str,
        service: str,
        prefix: str = "",
        silent: bool = False,
    ) -> bool:
        """Check whether an API is enabled on a project.

        Args:
            project_id: Project to check
            service: API name (``foo.googleapis.com``) or a URL on its host
            prefix: Label prepended to log messages
            silent: Suppress informational log messages

        Returns:
            True if the API reports state ENABLED (or is cached as enabled).

        Raises:
            ApiRequestError: The status query failed.
        """
        service = normalize_service_name(service)
        if self._cache.is_enabled(project_id, service):
            return True

        response = await self._client.get(
            f"/projects/{project_id}/services/{service}",
            headers=self._quota_headers(project_id),
        )
        body = response.body if isinstance(response.body, dict) else {}
        is_enabled = body.get("state") == ENABLED_STATE

        if is_enabled:
            if not silent:
                logger.info(self._label(prefix, f"required API {service} is enabled"))
            self._cache.mark_enabled(project_id, service)
        return is_enabled

    async def _enable(self, project_id: str, service: str) -> None:
        """Request enablement of an API once.

        Prefer ``ensure``: checking first needs a different permission than
        enabling, and most callers already hold it.

        Raises:
            BillingRequiredError: The project's plan does not allow the API.
            CloudApiError: Permission denied (message points at the console
                page for the blocked service when it can be identified) or
                any other upstream failure, unchanged.
        """
        try:
            await self._client.post(
                f"/projects/{project_id}/services/{service}:enable",
                headers=self._quota_headers(project_id),
            )
        except CloudApiError as err:
            if is_billing_error(err):
                raise BillingRequiredError(
                    f"Your project {project_id} must be on the Blaze (pay-as-you-go) "
                    f"plan to complete this command. Required API {service} can't be "
                    "enabled until the upgrade is complete. To upgrade, visit the "
                    f"following URL:\n\n{billing_upgrade_uri(project_id)}",
                    status=err.status,
                    body=err.body,
                    original=err,
                ) from err
            if is_permission_error(err):
                blocked = parse_permission_denied_service(err.message)
                audit_log(
                    "permission_denied",
                    action="enable",
                    project_id=project_id,
                    service=blocked or service,
                )
                if blocked:
                    err.message = (
                        f"Permissions denied enabling {blocked}.\n"
                        "Please ask a project owner to visit the following URL "
                        "to enable this service:\n\n"
                        f"{enable_api_uri(project_id, blocked)}"
                    )
            raise

    async def _poll_check_enabled(
        self,
        project_id: str,
        service: str,
        prefix: str,
        silent: bool,
    ) -> bool:
        """Poll the API state after one enable request.

        Returns:
            True once the API reports enabled, False when the poll budget
            for this enable attempt is used up.
        """
        for _ in range(self._settings.polls_before_retry + 1):
            await self._sleep(self._settings.poll_interval)
            if await self.check(project_id, service, prefix, silent):
                try:
                    self._track("api_enabled", {"api_name": service})
                except Exception as exc:
                    logger.debug(f"Failed to record api_enabled for {service}: {exc}")
                return True
            if not silent:
                logger.info(self._label(prefix, f"waiting for API {service} to activate..."))
        return False

    async def _enable_with_retries(
        self,
        project_id: str,
        service: str,
        prefix: str,
        silent: bool,
    ) -> None:
        for attempt in range(self._settings.max_enable_attempts):
            if attempt:
                logger.debug(f"Retrying enablement of {service} on {project_id} (attempt {attempt + 1})")
            await self._enable(project_id, service)
            if await self._poll_check_enabled(project_id, service, prefix, silent):
                return

        raise EnablementTimeoutError(
            f"Timed out waiting for API {service} to enable. "
            "Please try again in a few minutes.",
            service=service,
        )

    async def ensure(
        self,
        project_id: str,
        service: str,
        prefix: str = "",
        silent: bool = False,
    ) -> None:
        """Make sure an API is enabled, enabling it and waiting if needed.

        Args:
            project_id: Project to check
            service: API name (``foo.googleapis.com``) or a URL on its host
            prefix: Label prepended to log messages
            silent: Suppress informational log messages

        Raises:
            ApiRequestError: A status query or enable request failed.
            BillingRequiredError: The project's plan does not allow the API.
            EnablementTimeoutError: The API never reported enabled.
        """
        service = normalize_service_name(service)
        if not silent:
            logger.info(self._label(prefix, f"ensuring required API {service} is enabled..."))

        if await self.check(project_id, service, prefix, silent):
            return

        if not silent:
            logger.warning(self._label(prefix, f"missing required API {service}. Enabling now..."))
        await self._enable_with_retries(project_id, service, prefix, silent)

    async def best_effort_ensure(
        self,
        project_id: str,
        service: str,
        prefix: str = "",
        silent: bool = False,
    ) -> None:
        """Run ``ensure`` and swallow any failure.

        For callers whose next request fails with a clear error anyway if
        the API really is off.
        """
        try:
            await self.ensure(project_id, service, prefix, silent)
        except Exception as exc:
            logger.debug(
                f"Unable to check that {service} is enabled on {project_id}. "
                f"Calls to it will fail if it is not enabled: {exc}"
            )


def create_enablement_checker(
    config: ServerConfig,
    *,
    store: Optional[ConfigStore] = None,
    client: Optional[ApiClient] = None,
) -> ApiEnablementChecker:
    """Build a checker from server configuration."""
    if store is None:
        store = ConfigStore(config.enablement.get_configstore_path())
    if client is None:
        client = ApiClient(
            config.api.service_usage_origin,
            api_version="v1",
            access_token=config.access_token,
            timeout=config.api.timeout,
        )
    return ApiEnablementChecker(client, EnablementCache(store))


_checker: Optional[ApiEnablementChecker] = None


def get_enablement_checker() -> ApiEnablementChecker:
    """Get the process-wide checker, built from the global config on first use."""
    global _checker
    if _checker is None:
        _checker = create_enablement_checker(get_config())
    return _checker


def set_enablement_checker(checker: Optional[ApiEnablementChecker]) -> None:
    """Replace the process-wide checker (None resets to lazy creation)."""
    global _checker
    _checker = checker
