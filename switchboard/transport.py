"""discord.py transport adapter.

Bridges discord.py to the dispatch core:

* DiscordGateway answers "is this command global" from a cache of
  Discord's global command ids and performs per-guild and global
  bulk command overwrites for the publisher.
* SwitchboardClient converts raw interactions into InteractionEvent
  objects for the dispatcher and fans every gateway event out to the
  registered event listeners.
"""

import asyncio
from typing import Any, Iterable, List, Optional, Sequence, Set

import discord
import structlog

from .dispatcher import Dispatcher
from .exceptions import ConfigurationError
from .models import InteractionEvent, InteractionKind, InteractionOption

logger = structlog.get_logger("switchboard.transport")

_KIND_BY_TYPE = {
    discord.InteractionType.application_command: InteractionKind.COMMAND,
    discord.InteractionType.autocomplete: InteractionKind.AUTOCOMPLETE,
    discord.InteractionType.component: InteractionKind.COMPONENT,
    discord.InteractionType.modal_submit: InteractionKind.MODAL_SUBMIT,
}


def build_intents(names: Iterable[str]) -> discord.Intents:
    """Return ``discord.Intents`` with exactly the named flags enabled."""
    intents = discord.Intents.none()
    for name in names:
        if name not in discord.Intents.VALID_FLAGS:
            raise ConfigurationError(f"Unknown gateway intent {name!r}", setting_name="intents")
        setattr(intents, name, True)
    return intents


def _flatten_options(raw_options: Optional[List[dict]]) -> List[InteractionOption]:
    options: List[InteractionOption] = []
    for raw in raw_options or []:
        options.append(
            InteractionOption(
                name=raw.get("name", ""),
                type=int(raw.get("type", 0)),
                value=raw.get("value"),
                focused=bool(raw.get("focused", False)),
            )
        )
        # Sub-commands and groups nest their own options
        options.extend(_flatten_options(raw.get("options")))
    return options


def to_event(interaction: discord.Interaction) -> Optional[InteractionEvent]:
    """Convert a discord.py interaction into an InteractionEvent.

    Returns None for interaction types the dispatcher does not route
    (e.g. pings).
    """
    kind = _KIND_BY_TYPE.get(interaction.type)
    if kind is None:
        return None

    data = interaction.data or {}
    if kind in (InteractionKind.COMMAND, InteractionKind.AUTOCOMPLETE):
        name = data.get("name", "")
        command_id = data.get("id")
        options = tuple(_flatten_options(data.get("options")))
    else:
        name = data.get("custom_id", "")
        command_id = None
        options = ()

    return InteractionEvent(
        kind=kind,
        name=name,
        actor_id=str(interaction.user.id),
        channel_id=None if interaction.channel_id is None else str(interaction.channel_id),
        scope_id=None if interaction.guild_id is None else str(interaction.guild_id),
        command_id=None if command_id is None else str(command_id),
        options=options,
        raw=interaction,
    )


class GuildCommandHandle:
    """Command registration endpoint of a single guild."""

    def __init__(self, client: discord.Client, guild: discord.Guild):
        self._client = client
        self.guild = guild

    async def set_commands(self, payloads: Sequence[dict]) -> List[dict]:
        return await self._client.http.bulk_upsert_guild_commands(
            self._client.application_id, self.guild.id, list(payloads)
        )


class DiscordGateway:
    """Discord-side command registration and global command lookup.

    Keeps the ids of globally registered commands so incoming command
    interactions can be classified without an API round-trip.
    """

    def __init__(self, client: discord.Client):
        self.client = client
        self._global_ids: Set[str] = set()

    def is_global(self, command_id: Optional[str]) -> bool:
        return command_id is not None and str(command_id) in self._global_ids

    def _remember(self, commands: Iterable[dict]) -> None:
        self._global_ids = {str(command["id"]) for command in commands}

    async def refresh(self) -> None:
        """Reload the global command id cache from Discord."""
        commands = await self.client.http.get_global_commands(self.client.application_id)
        self._remember(commands)
        logger.debug("global_commands_cached", count=len(self._global_ids))

    async def fetch_scope(self, scope_id: str) -> GuildCommandHandle:
        guild = await self.client.fetch_guild(int(scope_id))
        return GuildCommandHandle(self.client, guild)

    async def set_global_commands(self, payloads: Sequence[dict]) -> List[dict]:
        commands = await self.client.http.bulk_upsert_global_commands(
            self.client.application_id, list(payloads)
        )
        if commands:
            self._remember(commands)
        return commands


def _log_task_exception(task: asyncio.Task) -> None:
    """Log exceptions from fire-and-forget tasks instead of silently swallowing them."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc:
        logger.error("background_task_failed", error=str(exc), exc_type=type(exc).__name__)


class SwitchboardClient(discord.Client):
    """discord.Client that hands interactions and events to a Dispatcher."""

    def __init__(self, dispatcher: Dispatcher, *, intents: discord.Intents, **options: Any):
        super().__init__(intents=intents, **options)
        self.dispatcher = dispatcher
        self._listener_tasks: Set[asyncio.Task] = set()

    def dispatch(self, event: str, /, *args: Any, **kwargs: Any) -> None:
        super().dispatch(event, *args, **kwargs)
        if not self.dispatcher.listeners.lookup(event):
            return
        task = asyncio.create_task(
            self.dispatcher.dispatch_event(event, *args),
            name=f"switchboard:{event}",
        )
        self._listener_tasks.add(task)
        task.add_done_callback(self._listener_tasks.discard)
        task.add_done_callback(_log_task_exception)

    async def on_interaction(self, interaction: discord.Interaction) -> None:
        event = to_event(interaction)
        if event is None:
            return
        await self.dispatcher.handle(event)
