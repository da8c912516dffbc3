"""Command publishing to Discord.

Reconciles the command registry with Discord's registered commands by
full replacement, once per guild scope and once globally. Components
and event listeners are local and never published.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence

import structlog

from .constants import DEFAULT_COMMAND_PERMISSIONS, DEFAULT_DM_PERMISSION
from .exceptions import PublishError
from .handler_base import Command
from .registry import HandlerRegistry
from .utils import pluralize

logger = structlog.get_logger("switchboard.publisher")


class ScopeHandle(Protocol):
    """A guild's command registration endpoint."""

    async def set_commands(self, payloads: Sequence[dict]) -> Optional[Sequence[Any]]:
        ...


class CommandGateway(Protocol):
    """The remote side of command registration."""

    async def fetch_scope(self, scope_id: str) -> ScopeHandle:
        ...

    async def set_global_commands(self, payloads: Sequence[dict]) -> Optional[Sequence[Any]]:
        ...


class CommandPublisher:
    """Publishes registered commands, replacing Discord's set per scope.

    Args:
        registry: Command registry to publish from.
        gateway: Remote registration endpoint.
        default_member_permissions: Permission bitfield applied to
            commands that do not set their own.
        dm_permission: DM availability applied to commands that do not
            set their own.
    """

    def __init__(
        self,
        registry: HandlerRegistry[Command],
        gateway: CommandGateway,
        default_member_permissions: Optional[int] = DEFAULT_COMMAND_PERMISSIONS,
        dm_permission: Optional[bool] = DEFAULT_DM_PERMISSION,
    ):
        self.registry = registry
        self.gateway = gateway
        self.default_member_permissions = default_member_permissions
        self.dm_permission = dm_permission

    def _payloads(self, commands: List[Command]) -> List[dict]:
        return [
            command.build(
                default_member_permissions=self.default_member_permissions,
                dm_permission=self.dm_permission,
            )
            for command in commands
        ]

    async def publish(self) -> Dict[Optional[str], int]:
        """Publish every guild scope, then the global scope.

        A failing scope does not stop the remaining scopes from being
        published. Every failure is reported once all scopes have been
        attempted.

        Returns:
            Published command count per scope id (``None`` = global).

        Raises:
            PublishError: One or more scopes failed. With several
                failures, ``failures`` holds one error per scope.
        """
        logger.info("commands_publishing")

        published: Dict[Optional[str], int] = {}
        failures: List[PublishError] = []

        for scope_id, commands in self.registry.scopes():
            try:
                published[scope_id] = await self._publish_scope(scope_id, commands)
            except PublishError as e:
                logger.error("commands_publish_failed", scope=f"GUILD: {scope_id}", error=str(e))
                failures.append(e)

        global_commands = self.registry.global_handlers()
        # An empty bulk overwrite would deregister every global command
        if global_commands:
            try:
                published[None] = await self._publish_global(global_commands)
            except PublishError as e:
                logger.error("commands_publish_failed", scope="GLOBAL", error=str(e))
                failures.append(e)

        if len(failures) == 1:
            raise failures[0]
        if failures:
            scopes = ", ".join(
                "global" if failure.scope_id is None else failure.scope_id
                for failure in failures
            )
            raise PublishError(
                f"Failed to publish commands to {len(failures)} scopes: {scopes}",
                failures=failures,
            ) from failures[0]

        logger.info("commands_published", scopes=len(published))
        return published

    async def _publish_scope(self, scope_id: str, commands: List[Command]) -> int:
        try:
            handle = await self.gateway.fetch_scope(scope_id)
        except Exception as e:
            raise PublishError(
                f"Failed to fetch guild while publishing commands [ID: {scope_id}]",
                scope_id=scope_id,
            ) from e

        try:
            acknowledged = await handle.set_commands(self._payloads(commands))
        except Exception as e:
            raise PublishError(
                f"Failed to publish guild commands [ID: {scope_id}]",
                scope_id=scope_id,
            ) from e

        if not acknowledged:
            raise PublishError(
                f"Failed to publish guild commands [ID: {scope_id}]: empty acknowledgment",
                scope_id=scope_id,
            )

        count = len(acknowledged)
        logger.info(
            "commands_scope_published",
            scope=f"GUILD: {scope_id}",
            count=count,
            msg=f"Published {count} {pluralize(count, 'command')}",
        )
        return count

    async def _publish_global(self, commands: List[Command]) -> int:
        try:
            acknowledged = await self.gateway.set_global_commands(self._payloads(commands))
        except Exception as e:
            raise PublishError("Failed to publish global commands") from e

        if not acknowledged:
            raise PublishError("Failed to publish global commands: empty acknowledgment")

        count = len(acknowledged)
        logger.info(
            "commands_scope_published",
            scope="GLOBAL",
            count=count,
            msg=f"Published {count} {pluralize(count, 'command')}",
        )
        return count
