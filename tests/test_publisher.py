"""Tests for command publishing."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from switchboard.constants import PERMISSION_MANAGE_GUILD
from switchboard.exceptions import PublishError
from switchboard.handler_base import Command
from switchboard.publisher import CommandPublisher
from switchboard.registry import HandlerRegistry


class _Command(Command):
    def __init__(self, name, guild_ids=None, **schema):
        super().__init__({"name": name, "description": f"{name} command", **schema}, guild_ids)

    async def execute(self, event):
        pass


def _registry(*commands):
    registry = HandlerRegistry("command")
    for command in commands:
        if command.scope_ids:
            for scope_id in command.scope_ids:
                registry.insert_scoped(scope_id, command)
        else:
            registry.insert_global(command)
    registry.seal()
    return registry


def _echo(payloads):
    """Acknowledge a bulk overwrite by echoing payloads with ids."""
    return [{"id": str(i), **payload} for i, payload in enumerate(payloads)]


def _make_gateway(failing_scopes=()):
    """Gateway whose guild handles echo what they are sent."""
    gateway = MagicMock()
    handles = {}

    async def fetch_scope(scope_id):
        if scope_id in failing_scopes:
            raise RuntimeError(f"Unknown Guild {scope_id}")
        handle = handles.setdefault(scope_id, MagicMock())
        handle.set_commands = AsyncMock(side_effect=_echo)
        return handle

    gateway.fetch_scope = AsyncMock(side_effect=fetch_scope)
    gateway.set_global_commands = AsyncMock(side_effect=_echo)
    gateway.handles = handles
    return gateway


class TestCommandPublisher:
    """Tests for CommandPublisher.publish()."""

    @pytest.mark.asyncio
    async def test_zero_global_commands_skips_global_replace(self):
        gateway = _make_gateway()
        publisher = CommandPublisher(_registry(_Command("admin", guild_ids=["111"])), gateway)

        result = await publisher.publish()

        gateway.set_global_commands.assert_not_called()
        assert result == {"111": 1}

    @pytest.mark.asyncio
    async def test_empty_registry_publishes_nothing(self):
        gateway = _make_gateway()
        result = await CommandPublisher(_registry(), gateway).publish()

        assert result == {}
        gateway.fetch_scope.assert_not_called()
        gateway.set_global_commands.assert_not_called()

    @pytest.mark.asyncio
    async def test_publishes_each_scope_as_full_replace(self):
        gateway = _make_gateway()
        registry = _registry(
            _Command("ping"),
            _Command("help"),
            _Command("admin", guild_ids=["111", "222"]),
            _Command("mod", guild_ids=["111"]),
        )

        result = await CommandPublisher(registry, gateway).publish()

        assert result == {"111": 2, "222": 1, None: 2}
        sent_111 = gateway.handles["111"].set_commands.call_args.args[0]
        assert sorted(p["name"] for p in sent_111) == ["admin", "mod"]
        sent_global = gateway.set_global_commands.call_args.args[0]
        assert [p["name"] for p in sent_global] == ["ping", "help"]
        gateway.set_global_commands.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_payload_applies_defaults(self):
        gateway = _make_gateway()
        registry = _registry(_Command("ping"), _Command("open", dm_permission=True))

        await CommandPublisher(registry, gateway).publish()

        ping, open_ = gateway.set_global_commands.call_args.args[0]
        assert ping["default_member_permissions"] == str(PERMISSION_MANAGE_GUILD)
        assert ping["dm_permission"] is False
        assert ping["type"] == 1
        assert open_["dm_permission"] is True

    @pytest.mark.asyncio
    async def test_configured_defaults_used(self):
        gateway = _make_gateway()
        publisher = CommandPublisher(
            _registry(_Command("ping")), gateway,
            default_member_permissions=8, dm_permission=True,
        )

        await publisher.publish()

        (ping,) = gateway.set_global_commands.call_args.args[0]
        assert ping["default_member_permissions"] == "8"
        assert ping["dm_permission"] is True

    @pytest.mark.asyncio
    async def test_fetch_failure_reports_scope_and_cause(self):
        gateway = _make_gateway(failing_scopes={"111"})
        registry = _registry(_Command("admin", guild_ids=["111"]))

        with pytest.raises(PublishError) as exc_info:
            await CommandPublisher(registry, gateway).publish()

        error = exc_info.value
        assert error.scope_id == "111"
        assert "111" in str(error)
        assert isinstance(error.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_failing_scope_does_not_block_others(self):
        gateway = _make_gateway(failing_scopes={"111"})
        registry = _registry(
            _Command("ping"),
            _Command("admin", guild_ids=["111"]),
            _Command("mod", guild_ids=["222"]),
        )

        with pytest.raises(PublishError) as exc_info:
            await CommandPublisher(registry, gateway).publish()

        assert exc_info.value.scope_id == "111"
        gateway.handles["222"].set_commands.assert_awaited_once()
        gateway.set_global_commands.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_multiple_failures_name_every_scope(self):
        gateway = _make_gateway(failing_scopes={"111", "222"})
        registry = _registry(
            _Command("admin", guild_ids=["111"]),
            _Command("mod", guild_ids=["222"]),
        )

        with pytest.raises(PublishError) as exc_info:
            await CommandPublisher(registry, gateway).publish()

        error = exc_info.value
        assert error.failed_scopes == ["111", "222"]
        assert "111" in str(error) and "222" in str(error)
        assert all(isinstance(f.__cause__, RuntimeError) for f in error.failures)

    @pytest.mark.asyncio
    async def test_empty_acknowledgment_is_failure(self):
        gateway = _make_gateway()
        gateway.set_global_commands = AsyncMock(return_value=None)

        with pytest.raises(PublishError) as exc_info:
            await CommandPublisher(_registry(_Command("ping")), gateway).publish()

        assert exc_info.value.scope_id is None
        assert exc_info.value.failed_scopes == [None]

    @pytest.mark.asyncio
    async def test_guild_replace_error_wrapped(self):
        gateway = _make_gateway()
        registry = _registry(_Command("admin", guild_ids=["111"]))

        async def fetch_scope(scope_id):
            handle = MagicMock()
            handle.set_commands = AsyncMock(side_effect=ConnectionError("reset"))
            return handle

        gateway.fetch_scope = AsyncMock(side_effect=fetch_scope)

        with pytest.raises(PublishError) as exc_info:
            await CommandPublisher(registry, gateway).publish()
        assert isinstance(exc_info.value.__cause__, ConnectionError)
