"""Discord bot runtime for switchboard.

Owns the registries, loader, publisher, dispatcher and discord.py
client, and runs the startup sequence:

    load components, commands, listeners → seal registries →
    log in → publish commands → connect gateway

Registries are sealed before the gateway connects, so no interaction
is dispatched against a partially loaded registry.

Key classes:
    SwitchboardBot: Startup orchestration and lifecycle.
"""

from typing import Dict, List, Optional

import aiohttp
import discord
import structlog

from .config import Config, get_config
from .constants import CATEGORY_COMMAND, CATEGORY_COMPONENT, CATEGORY_EVENT_LISTENER
from .dispatcher import Dispatcher
from .exceptions import ConfigurationError
from .handler_base import Command, Component, EventListener
from .loader import DirectorySource, HandlerCategory, HandlerLoader
from .publisher import CommandPublisher
from .registry import HandlerRegistry, ListenerRegistry
from .transport import DiscordGateway, SwitchboardClient, build_intents

logger = structlog.get_logger("switchboard.bot")


class SwitchboardBot:
    """Discord bot built from handler directories.

    Initialization is split in two phases: __init__ wires objects
    together, ``load()`` populates and seals the registries and
    ``start()`` logs in, publishes and connects.
    """

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()

        self.commands: HandlerRegistry[Command] = HandlerRegistry(CATEGORY_COMMAND)
        self.components: HandlerRegistry[Component] = HandlerRegistry(CATEGORY_COMPONENT)
        self.listeners = ListenerRegistry(CATEGORY_EVENT_LISTENER)
        self.loader = HandlerLoader()

        self.dispatcher = Dispatcher(
            commands=self.commands,
            components=self.components,
            listeners=self.listeners,
            authority=self,
        )
        self.client = SwitchboardClient(
            self.dispatcher, intents=build_intents(self.config.intents)
        )
        self.gateway = DiscordGateway(self.client)
        self.publisher = CommandPublisher(
            self.commands,
            self.gateway,
            default_member_permissions=self.config.default_member_permissions,
            dm_permission=self.config.dm_permission,
        )

    def is_global(self, command_id: Optional[str]) -> bool:
        """Global command authority for the dispatcher; the gateway is built after it."""
        return self.gateway.is_global(command_id)

    def categories(self) -> List[HandlerCategory]:
        """Handler categories in load order."""
        return [
            HandlerCategory(
                CATEGORY_COMPONENT, Component,
                DirectorySource(self.config.components_dir), self.components,
            ),
            HandlerCategory(
                CATEGORY_COMMAND, Command,
                DirectorySource(self.config.commands_dir), self.commands,
            ),
            HandlerCategory(
                CATEGORY_EVENT_LISTENER, EventListener,
                DirectorySource(self.config.events_dir), self.listeners,
            ),
        ]

    def load(self, categories: Optional[List[HandlerCategory]] = None) -> Dict[str, int]:
        """Load every handler category, then seal the registries.

        Raises:
            LoadError: A category failed to load. Startup must abort.
        """
        counts = {}
        for category in categories or self.categories():
            counts[category.name] = self.loader.load(category)

        for registry in (self.components, self.commands, self.listeners):
            registry.seal()
        return counts

    async def start(self) -> None:
        """Load handlers, log in, publish commands and connect.

        Runs until the gateway connection closes.

        Raises:
            ConfigurationError: The Discord token is missing or rejected.
            LoadError: A handler category failed to load.
            PublishError: Commands could not be published.
        """
        token = self.config.discord_token
        if not token:
            raise ConfigurationError("DISCORD_TOKEN is not set", setting_name="DISCORD_TOKEN")

        self.load()

        try:
            await self.client.login(token)
        except discord.LoginFailure as e:
            raise ConfigurationError("Discord rejected the bot token", setting_name="DISCORD_TOKEN") from e
        except (discord.HTTPException, aiohttp.ClientError) as e:
            logger.error("discord_login_failed", error=str(e), error_type=type(e).__name__)
            raise

        logger.info("discord_logged_in", application_id=self.client.application_id)

        await self.gateway.refresh()
        await self.publisher.publish()

        await self.client.connect(reconnect=True)

    async def run(self) -> None:
        """Start the bot and close the client when it stops."""
        try:
            await self.start()
        finally:
            await self.stop()

    async def stop(self) -> None:
        if not self.client.is_closed():
            await self.client.close()
            logger.info("discord_client_closed")
