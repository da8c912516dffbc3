"""Handler base classes for switchboard extensibility.

Every handler module under handlers/<category>/ defines one or more
subclasses of these bases. The loader instantiates them with no
arguments, so subclasses pass their metadata to ``super().__init__``.

Example::

    class PingCommand(Command):
        def __init__(self):
            super().__init__(CommandSchema(name="ping", description="Ping Pong!"))

        async def execute(self, event):
            await event.raw.response.send_message("Pong!")
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Iterable, Optional, Tuple, Union

import structlog

from .constants import DEFAULT_COMMAND_PERMISSIONS, DEFAULT_DM_PERMISSION
from .models import CommandSchema, InteractionEvent

HandlerResult = Optional[Awaitable[None]]


def _normalize_scope_ids(scope_ids: Optional[Iterable[Union[int, str]]]) -> Tuple[str, ...]:
    """Return guild ids as an ordered, de-duplicated tuple of strings."""
    if not scope_ids:
        return ()
    seen = []
    for scope_id in scope_ids:
        scope_id = str(scope_id)
        if scope_id not in seen:
            seen.append(scope_id)
    return tuple(seen)


class Handler(ABC):
    """Shape shared by all handler categories.

    Attributes:
        identity: Key the handler is registered and resolved under.
        scope_ids: Guild ids the handler is restricted to; empty means
            global.
    """

    def __init__(self, identity: str, scope_ids: Optional[Iterable[Union[int, str]]] = None):
        self._identity = identity
        self._scope_ids = _normalize_scope_ids(scope_ids)
        self.logger = structlog.get_logger("switchboard.handlers", handler=identity)

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def scope_ids(self) -> Tuple[str, ...]:
        return self._scope_ids

    @property
    def is_global(self) -> bool:
        return not self._scope_ids

    @abstractmethod
    def execute(self, *args: Any) -> HandlerResult:
        """Run the handler. May be a coroutine function."""
        ...

    def __repr__(self) -> str:
        scope = ",".join(self._scope_ids) or "global"
        return f"<{type(self).__name__} {self._identity!r} scope={scope}>"


class Command(Handler):
    """Base class for slash commands.

    Args:
        data: Command schema, or a dict validated into one.
        guild_ids: Guilds to publish the command to. Omit to publish
            globally.

    Override ``autocomplete(event)`` to answer partial-input
    suggestions; commands without it reject autocomplete events.
    """

    def __init__(
        self,
        data: Union[CommandSchema, dict],
        guild_ids: Optional[Iterable[Union[int, str]]] = None,
    ):
        if not isinstance(data, CommandSchema):
            data = CommandSchema.model_validate(data)
        self.data = data
        super().__init__(data.name, guild_ids)

    @property
    def guild_ids(self) -> Tuple[str, ...]:
        return self.scope_ids

    @property
    def has_autocomplete(self) -> bool:
        return callable(getattr(self, "autocomplete", None))

    @abstractmethod
    def execute(self, event: InteractionEvent) -> HandlerResult:
        """Handle the command invocation."""
        ...

    def build(
        self,
        default_member_permissions: Optional[int] = DEFAULT_COMMAND_PERMISSIONS,
        dm_permission: Optional[bool] = DEFAULT_DM_PERMISSION,
    ) -> dict:
        """Return the command's publish payload.

        Defaults apply only where the schema leaves the field unset.
        """
        schema = self.data
        updates = {}
        if schema.default_member_permissions is None:
            updates["default_member_permissions"] = default_member_permissions
        if schema.dm_permission is None:
            updates["dm_permission"] = dm_permission
        if updates:
            schema = schema.model_copy(update=updates)
        return schema.to_payload()


class Component(Handler):
    """Base class for message components and modals, keyed by custom id."""

    def __init__(self, custom_id: str, guild_ids: Optional[Iterable[Union[int, str]]] = None):
        super().__init__(custom_id, guild_ids)

    @property
    def custom_id(self) -> str:
        return self.identity

    @abstractmethod
    def execute(self, event: InteractionEvent) -> HandlerResult:
        """Handle the button press, select or modal submission."""
        ...


class EventListener(Handler):
    """Base class for gateway event listeners.

    Args:
        event: Gateway event name without the ``on_`` prefix
            (e.g. ``"ready"``, ``"guild_join"``).
        once: Fire only on the first occurrence of the event.

    Several listeners may share an event name; all of them run.
    """

    def __init__(self, event: str, *, once: bool = False):
        if event.startswith("on_"):
            event = event[3:]
        self.once = once
        super().__init__(event)

    @property
    def event(self) -> str:
        return self.identity

    @abstractmethod
    def execute(self, *args: Any) -> HandlerResult:
        """Handle the event. Receives the gateway event's arguments."""
        ...
