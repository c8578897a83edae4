"""Persistent key-value store backed by a single JSON file.

Holds small pieces of per-user state that should survive across CLI
invocations and server restarts, such as the API enablement cache.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from filelock import FileLock

logger = logging.getLogger(__name__)


def get_configstore_path() -> Path:
    """Get the configstore file path.

    Resolution order:
    1. CLOUDAPI_MCP_CONFIGSTORE_PATH environment variable
    2. ~/.cloudapi-mcp/configstore.json

    Returns:
        Path to the configstore file.
    """
    if store_path := os.environ.get("CLOUDAPI_MCP_CONFIGSTORE_PATH"):
        return Path(store_path).expanduser()

    return Path.home() / ".cloudapi-mcp" / "configstore.json"


class ConfigStore:
    """JSON-file key-value store.

    Every read goes to disk so concurrent processes see each other's
    writes. Read-modify-write updates hold a lock file beside the store,
    and the file is replaced atomically so readers never see a partial write.
    """

    def __init__(self, path: Optional[Path] = None):
        """Initialize the store.

        Args:
            path: Optional override for the backing file.
        """
        self.path = path or get_configstore_path()

    def _lock(self) -> FileLock:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return FileLock(self.path.with_suffix(".lock"), timeout=10)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable configstore {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            suffix=".tmp",
            prefix=f".{self.path.name}_",
            dir=self.path.parent,
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2, sort_keys=True)
            os.replace(temp_path, self.path)
        except BaseException:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``."""
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""
        with self._lock():
            data = self._load()
            data[key] = value
            self._save(data)

    def update(self, key: str, mutate: Callable[[Any], Any]) -> Any:
        """Replace the value under ``key`` with ``mutate(current)``.

        The read and the write happen under one lock, so concurrent
        updates from other processes are never lost. Returning None from
        ``mutate`` removes the key.

        Returns:
            The new value.
        """
        with self._lock():
            data = self._load()
            value = mutate(data.get(key))
            if value is None:
                data.pop(key, None)
            else:
                data[key] = value
            self._save(data)
            return value

