"""Action routing for unified MCP tools.

Each unified tool exposes a single ``action`` parameter; the router maps the
action name (or one of its aliases) onto a handler.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)


class ActionRouterError(ValueError):
    """Raised when an action is missing or not supported by a tool."""

    def __init__(self, message: str, *, allowed_actions: Sequence[str]):
        super().__init__(message)
        self.allowed_actions = list(allowed_actions)


@dataclass(frozen=True)
class ActionDefinition:
    """A named tool action.

    Attributes:
        name: Canonical action name
        handler: Callable invoked with the dispatch keyword arguments
        summary: One-line description used for discovery
        aliases: Alternative names that resolve to this action
    """

    name: str
    handler: Callable[..., Any]
    summary: Optional[str] = None
    aliases: Sequence[str] = field(default_factory=tuple)


class ActionRouter:
    """Dispatch ``action`` values to handlers for one tool."""

    def __init__(self, *, tool_name: str, actions: Iterable[ActionDefinition]):
        self.tool_name = tool_name
        self._definitions: Dict[str, ActionDefinition] = {}
        self._lookup: Dict[str, str] = {}

        for definition in actions:
            key = definition.name.lower()
            if key in self._lookup:
                raise ValueError(f"Duplicate action '{definition.name}' for tool {tool_name}")
            self._definitions[key] = definition
            self._lookup[key] = key
            for alias in definition.aliases:
                alias_key = alias.lower()
                if alias_key in self._lookup:
                    raise ValueError(f"Duplicate action '{alias}' for tool {tool_name}")
                self._lookup[alias_key] = key

        if not self._definitions:
            raise ValueError(f"Tool {tool_name} requires at least one action")

    def allowed_actions(self) -> List[str]:
        return [definition.name for definition in self._definitions.values()]

    def describe(self) -> Dict[str, Optional[str]]:
        """Return action summaries keyed by action name."""
        return {
            definition.name: definition.summary
            for definition in self._definitions.values()
        }

    def resolve(self, action: Optional[str]) -> ActionDefinition:
        if not action:
            raise ActionRouterError(
                f"Tool {self.tool_name} requires an action",
                allowed_actions=self.allowed_actions(),
            )
        key = self._lookup.get(action.strip().lower())
        if key is None:
            raise ActionRouterError(
                f"Unsupported action '{action}' for tool {self.tool_name}",
                allowed_actions=self.allowed_actions(),
            )
        return self._definitions[key]

    def dispatch(self, action: Optional[str] = None, **kwargs: Any) -> Any:
        """Invoke the handler for ``action``.

        Async handlers return their coroutine; callers await the result.

        Raises:
            ActionRouterError: The action is missing or unsupported.
        """
        definition = self.resolve(action)
        logger.debug(f"Dispatching {self.tool_name}.{definition.name}")
        return definition.handler(**kwargs)
