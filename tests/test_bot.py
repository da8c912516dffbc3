"""Tests for the bot startup sequence."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from switchboard.bot import SwitchboardBot
from switchboard.exceptions import ConfigurationError, LoadError

REPO_HANDLERS = Path(__file__).parent.parent / "handlers"


def _config(handlers_dir=REPO_HANDLERS, token="token"):
    config = MagicMock()
    config.discord_token = token
    config.intents = ["guilds"]
    config.default_member_permissions = 32
    config.dm_permission = False
    config.commands_dir = handlers_dir / "commands"
    config.components_dir = handlers_dir / "components"
    config.events_dir = handlers_dir / "events"
    return config


class TestSwitchboardBot:

    @pytest.mark.asyncio
    async def test_load_populates_and_seals_registries(self):
        bot = SwitchboardBot(_config())

        counts = bot.load()

        assert counts == {"component": 1, "command": 2, "event listener": 1}
        assert bot.commands.sealed
        assert bot.components.sealed
        assert bot.listeners.sealed

    @pytest.mark.asyncio
    async def test_load_failure_propagates(self, tmp_path):
        (tmp_path / "commands").mkdir()
        (tmp_path / "commands" / "broken.py").write_text("raise RuntimeError('import failed')\n")
        bot = SwitchboardBot(_config(handlers_dir=tmp_path))

        with pytest.raises(LoadError):
            bot.load()
        assert not bot.commands.sealed

    @pytest.mark.asyncio
    async def test_start_without_token_fails_before_login(self):
        bot = SwitchboardBot(_config(token=""))
        bot.client.login = AsyncMock()

        with pytest.raises(ConfigurationError):
            await bot.start()
        bot.client.login.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_publishes_before_connecting(self):
        bot = SwitchboardBot(_config())
        order = []
        bot.client.login = AsyncMock(side_effect=lambda token: order.append("login"))
        bot.client.connect = AsyncMock(side_effect=lambda reconnect: order.append("connect"))
        bot.gateway.refresh = AsyncMock(side_effect=lambda: order.append("refresh"))
        bot.publisher.publish = AsyncMock(side_effect=lambda: order.append("publish"))

        await bot.start()

        assert order == ["login", "refresh", "publish", "connect"]
        assert bot.commands.sealed

    @pytest.mark.asyncio
    async def test_is_global_delegates_to_gateway(self):
        bot = SwitchboardBot(_config())
        bot.gateway._remember([{"id": "900"}])
        assert bot.is_global("900")
        assert not bot.is_global("901")
