"""Resource registry: resource identifier -> task handler.

The registry holds the built-in system handlers plus one `RemoteAction` per
action currently deployed on the task platform. It is built once by
`discover()` and is read-only afterwards.

Every deployed action is registered, not only those the active workflow
references: on the resume path the workflow is only known after the
continuation is loaded, and handlers are cheap values that do nothing until
a state dispatches to them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType

from resumable_orchestrator.orchestrator.errors import RegistryDiscoveryError
from resumable_orchestrator.orchestrator.whisk.client import WhiskClient, WhiskError
from resumable_orchestrator.orchestrator.workflow.handlers import (
    HandlerVariant,
    RemoteAction,
    Respond,
    Suspend,
)

logger = logging.getLogger(__name__)


def builtin_handlers() -> dict[str, HandlerVariant]:
    return {
        "suspend": Suspend(),
        "sendResponse": Respond(),
        "respond": Respond(),
    }


BUILTIN_RESOURCES = frozenset(builtin_handlers())


class ResourceRegistry(Mapping[str, HandlerVariant]):
    """Immutable mapping of resource names to task handlers."""

    def __init__(self, handlers: Mapping[str, HandlerVariant]) -> None:
        self._handlers = MappingProxyType(dict(handlers))

    def __getitem__(self, key: str) -> HandlerVariant:
        return self._handlers[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def remote_actions(self) -> list[str]:
        return sorted(name for name, h in self._handlers.items() if isinstance(h, RemoteAction))


def discover(client: WhiskClient) -> ResourceRegistry:
    """Build the registry from the task platform's current catalog.

    Raises:
        RegistryDiscoveryError if the catalog cannot be listed. Not retried.
    """

    try:
        declarations = client.list_actions()
    except WhiskError as e:
        raise RegistryDiscoveryError(f"Could not list deployed actions: {e}") from e

    handlers = builtin_handlers()
    for decl in declarations:
        if decl.name in BUILTIN_RESOURCES:
            logger.warning(
                "Deployed action shadows a built-in resource; keeping the built-in",
                extra={"action": decl.name},
            )
            continue
        logger.info("Registering remote action", extra={"action": decl.name})
        handlers[decl.name] = RemoteAction(name=decl.name, client=client)

    return ResourceRegistry(handlers)
