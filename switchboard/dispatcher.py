"""Interaction and event dispatch.

Resolves each inbound interaction to exactly one registered handler
and invokes it, converting handler failures into ExecutionError with
a trace of the originating interaction. Gateway events fan out to
every listener registered under the event name.

Key classes:
    GlobalCommandAuthority: Protocol answering "is this command global".
    Dispatcher: Resolution, invocation and failure isolation.
"""

import asyncio
import inspect
from typing import Any, Callable, Optional, Protocol, Set

import structlog

from .exceptions import ExecutionError, NotFoundError, SwitchboardError, ensure_error
from .handler_base import Command, Component
from .models import InteractionEvent, InteractionKind
from .registry import HandlerRegistry, ListenerRegistry

logger = structlog.get_logger("switchboard.dispatch")


class GlobalCommandAuthority(Protocol):
    """Source of truth for which commands are registered globally.

    Discord's global command list decides whether an incoming command
    id refers to a global or a guild command.
    """

    def is_global(self, command_id: Optional[str]) -> bool:
        ...


async def _invoke(action: Callable[..., Any], *args: Any) -> None:
    result = action(*args)
    if inspect.isawaitable(result):
        await result


class Dispatcher:
    """Routes interactions and gateway events to registered handlers.

    Args:
        commands: Command registry.
        components: Component registry.
        listeners: Event listener registry.
        authority: Answers whether a command id is registered globally.
    """

    def __init__(
        self,
        commands: HandlerRegistry[Command],
        components: HandlerRegistry[Component],
        listeners: ListenerRegistry,
        authority: GlobalCommandAuthority,
    ):
        self.commands = commands
        self.components = components
        self.listeners = listeners
        self.authority = authority
        self._spent_once: Set[int] = set()

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def _resolve_command(self, event: InteractionEvent) -> Command:
        await self.commands.wait_sealed()
        is_global = self.authority.is_global(event.command_id)
        command = self.commands.lookup(event.name, event.scope_id, is_global)
        if command is None:
            raise NotFoundError(
                f'Command "{event.name}" not found',
                identity=event.name,
                reason=NotFoundError.NOT_REGISTERED,
                guild_id=event.scope_id,
            )
        return command

    async def _resolve_component(self, event: InteractionEvent) -> Component:
        await self.components.wait_sealed()
        # Components are never published; the local global table decides
        is_global = self.components.has_global(event.name)
        component = self.components.lookup(event.name, event.scope_id, is_global)
        if component is None:
            raise NotFoundError(
                f'Component "{event.name}" not found',
                identity=event.name,
                reason=NotFoundError.NOT_REGISTERED,
                guild_id=event.scope_id,
            )
        return component

    async def _run(self, action: Callable[..., Any], event: InteractionEvent) -> None:
        try:
            await _invoke(action, event)
        except Exception as e:
            raise ExecutionError(event, e) from e

    # ------------------------------------------------------------------
    # Interaction dispatch
    # ------------------------------------------------------------------

    async def dispatch_invocation(self, event: InteractionEvent) -> None:
        """Run the command an invocation refers to.

        Raises:
            NotFoundError: No command is registered for the event's
                name in the resolved scope.
            ExecutionError: The command's ``execute`` raised.
        """
        command = await self._resolve_command(event)
        await self._run(command.execute, event)

    async def dispatch_autocomplete(self, event: InteractionEvent) -> None:
        """Run the autocomplete behaviour of the command in ``event``.

        Raises:
            NotFoundError: With reason ``not_registered`` when the command
                is unknown, ``no_autocomplete`` when it has no
                autocomplete behaviour.
            ExecutionError: The command's ``autocomplete`` raised.
        """
        command = await self._resolve_command(event)
        if not command.has_autocomplete:
            raise NotFoundError(
                f'Command "{event.name}" does not have an autocomplete() method',
                identity=event.name,
                reason=NotFoundError.NO_AUTOCOMPLETE,
            )
        await self._run(command.autocomplete, event)

    async def dispatch_component(self, event: InteractionEvent) -> None:
        """Run the component a button, select or modal interaction targets.

        Raises:
            NotFoundError: No component is registered for the custom id.
            ExecutionError: The component's ``execute`` raised.
        """
        component = await self._resolve_component(event)
        await self._run(component.execute, event)

    async def handle(self, event: InteractionEvent) -> None:
        """Dispatch ``event`` and contain any failure to it.

        This is the transport boundary: errors are logged, never raised,
        so one failing interaction cannot stop delivery of the next.
        """
        try:
            if event.kind is InteractionKind.COMMAND:
                await self.dispatch_invocation(event)
            elif event.kind is InteractionKind.AUTOCOMPLETE:
                await self.dispatch_autocomplete(event)
            else:
                await self.dispatch_component(event)
        except NotFoundError as e:
            logger.warning(
                "interaction_unresolved",
                kind=event.kind.value,
                identity=e.identity,
                reason=e.reason,
                guild_id=event.scope_id,
            )
        except ExecutionError as e:
            logger.error(
                "interaction_failed",
                kind=event.kind.value,
                error=str(e),
                error_type=type(e.cause).__name__,
                exc_info=e.cause,
            )
        except SwitchboardError as e:
            logger.error("interaction_dispatch_error", kind=event.kind.value, error=str(e))
        except Exception as e:
            logger.error(
                "interaction_dispatch_error",
                kind=event.kind.value,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )

    # ------------------------------------------------------------------
    # Event fan-out
    # ------------------------------------------------------------------

    async def dispatch_event(self, event_name: str, *args: Any) -> int:
        """Run every listener registered for ``event_name``.

        Listeners run concurrently and independently; a failing
        listener is logged and does not affect the others. ``once``
        listeners run at most once per process.

        Returns:
            Number of listeners that completed without raising.
        """
        await self.listeners.wait_sealed()

        due = []
        for listener in self.listeners.lookup(event_name):
            if listener.once:
                if id(listener) in self._spent_once:
                    continue
                self._spent_once.add(id(listener))
            due.append(listener)

        if not due:
            return 0

        results = await asyncio.gather(
            *(_invoke(listener.execute, *args) for listener in due),
            return_exceptions=True,
        )

        succeeded = 0
        for listener, result in zip(due, results):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if result is None:
                succeeded += 1
                continue
            error = ensure_error(result)
            logger.error(
                "event_listener_failed",
                event_name=event_name,
                listener=type(listener).__name__,
                error=str(error),
                error_type=type(error).__name__,
                exc_info=error,
            )
        return succeeded

