"""In-memory handler registries.

Registries are written once during startup, then sealed. After
``seal()`` they are read-only, so concurrent dispatches read them
without locking. ``wait_sealed()`` is the barrier dispatches await
before their first lookup.

Key classes:
    HandlerRegistry: Exclusive resolution (commands, components),
        partitioned into a global table and per-guild tables.
    ListenerRegistry: Fan-out resolution (event listeners).
"""

import asyncio
from typing import Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

import structlog

from .exceptions import RegistryError
from .handler_base import EventListener, Handler

logger = structlog.get_logger("switchboard.loader")

H = TypeVar("H", bound=Handler)


class _SealableRegistry:
    """Write-once lifecycle shared by both registry kinds."""

    def __init__(self, name: str):
        self.name = name
        self._sealed = False
        self._sealed_event: Optional[asyncio.Event] = None

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        """End the write phase. Further inserts raise RegistryError."""
        if self._sealed:
            return
        self._sealed = True
        if self._sealed_event is not None:
            self._sealed_event.set()
        logger.debug("registry_sealed", registry=self.name, handlers=len(self))

    async def wait_sealed(self) -> None:
        """Wait until the registry has been sealed."""
        if self._sealed:
            return
        if self._sealed_event is None:
            self._sealed_event = asyncio.Event()
        await self._sealed_event.wait()

    def _check_writable(self, identity: str) -> None:
        if self._sealed:
            raise RegistryError(
                f"Cannot register {identity!r}: {self.name} registry is sealed",
                identity=identity,
            )


class HandlerRegistry(_SealableRegistry, Generic[H]):
    """Maps handler identities to handlers, partitioned by scope.

    ``global_table`` holds handlers available everywhere;
    ``scoped_table`` holds, per guild id, handlers restricted to that
    guild. An identity is unique within each scope and may not exist
    both globally and in any guild scope.
    """

    def __init__(self, name: str):
        super().__init__(name)
        self._global: Dict[str, H] = {}
        self._scoped: Dict[str, Dict[str, H]] = {}

    def insert_global(self, handler: H) -> None:
        """Register ``handler`` in the global partition."""
        identity = handler.identity
        self._check_writable(identity)
        if identity in self._global:
            raise RegistryError(
                f"Duplicate global {self.name} {identity!r}",
                identity=identity,
            )
        clashing = [scope_id for scope_id, table in self._scoped.items() if identity in table]
        if clashing:
            raise RegistryError(
                f"{self.name.capitalize()} {identity!r} is registered both globally "
                f"and in guild scope(s) {', '.join(clashing)}",
                identity=identity,
            )
        self._global[identity] = handler

    def insert_scoped(self, scope_id: str, handler: H) -> None:
        """Register ``handler`` under guild ``scope_id``."""
        identity = handler.identity
        self._check_writable(identity)
        if identity in self._global:
            raise RegistryError(
                f"{self.name.capitalize()} {identity!r} is registered both globally "
                f"and in guild scope {scope_id}",
                identity=identity,
                scope_id=scope_id,
            )
        table = self._scoped.setdefault(str(scope_id), {})
        existing = table.get(identity)
        if existing is not None and existing is not handler:
            raise RegistryError(
                f"Duplicate {self.name} {identity!r} in guild scope {scope_id}",
                identity=identity,
                scope_id=scope_id,
            )
        table[identity] = handler

    def lookup(self, identity: str, scope_id: Optional[str], is_global: bool) -> Optional[H]:
        """Resolve ``identity`` to exactly one handler.

        Args:
            identity: Command name or component custom id.
            scope_id: Guild the interaction came from, None in DMs.
            is_global: Whether the external authority reports the
                identity as globally registered. Global wins.
        """
        if is_global:
            return self._global.get(identity)
        if scope_id is None:
            return None
        table = self._scoped.get(str(scope_id))
        if table is None:
            return None
        return table.get(identity)

    def has_global(self, identity: str) -> bool:
        return identity in self._global

    def global_handlers(self) -> List[H]:
        return list(self._global.values())

    def scopes(self) -> Iterator[Tuple[str, List[H]]]:
        """Yield ``(scope_id, handlers)`` for every non-empty guild scope."""
        for scope_id, table in self._scoped.items():
            if table:
                yield scope_id, list(table.values())

    def __len__(self) -> int:
        distinct = {id(h) for h in self._global.values()}
        for table in self._scoped.values():
            distinct.update(id(h) for h in table.values())
        return len(distinct)


class ListenerRegistry(_SealableRegistry):
    """Maps event names to every listener registered for them."""

    def __init__(self, name: str = "event listener"):
        super().__init__(name)
        self._global: Dict[str, List[EventListener]] = {}
        self._scoped: Dict[str, Dict[str, List[EventListener]]] = {}
        # Insertion order across both partitions
        self._order: Dict[int, int] = {}

    def _remember(self, listener: EventListener) -> None:
        self._order.setdefault(id(listener), len(self._order))

    def insert_global(self, listener: EventListener) -> None:
        self._check_writable(listener.identity)
        self._global.setdefault(listener.identity, []).append(listener)
        self._remember(listener)

    def insert_scoped(self, scope_id: str, listener: EventListener) -> None:
        self._check_writable(listener.identity)
        table = self._scoped.setdefault(str(scope_id), {})
        table.setdefault(listener.identity, []).append(listener)
        self._remember(listener)

    def lookup(self, event_name: str) -> Tuple[EventListener, ...]:
        """Return all listeners for ``event_name`` in registration order."""
        found: Dict[int, EventListener] = {}
        for listener in self._global.get(event_name, ()):
            found.setdefault(id(listener), listener)
        for table in self._scoped.values():
            for listener in table.get(event_name, ()):
                found.setdefault(id(listener), listener)
        return tuple(sorted(found.values(), key=lambda item: self._order[id(item)]))

    def event_names(self) -> List[str]:
        names = list(self._global)
        for table in self._scoped.values():
            names.extend(name for name in table if name not in names)
        return names

    def __len__(self) -> int:
        return len(self._order)
