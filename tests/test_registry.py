"""Tests for the handler and listener registries."""

import asyncio

import pytest

from switchboard.exceptions import RegistryError
from switchboard.handler_base import Command, EventListener
from switchboard.registry import HandlerRegistry, ListenerRegistry


class _Command(Command):
    def __init__(self, name, guild_ids=None):
        super().__init__({"name": name, "description": f"{name} command"}, guild_ids)

    async def execute(self, event):
        pass


class _Listener(EventListener):
    def __init__(self, event, once=False):
        super().__init__(event, once=once)

    def execute(self, *args):
        pass


def _insert(registry, handler):
    """Insert the way the loader does: per scope, or globally."""
    if handler.scope_ids:
        for scope_id in handler.scope_ids:
            registry.insert_scoped(scope_id, handler)
    else:
        registry.insert_global(handler)


class TestHandlerRegistry:
    """Tests for exclusive, scope-partitioned resolution."""

    def test_global_handler_resolves_without_scope(self):
        registry = HandlerRegistry("command")
        ping = _Command("ping")
        _insert(registry, ping)

        assert registry.lookup("ping", None, is_global=True) is ping
        assert registry.lookup("ping", "111", is_global=True) is ping

    def test_global_handler_not_reachable_as_scoped(self):
        registry = HandlerRegistry("command")
        _insert(registry, _Command("ping"))
        _insert(registry, _Command("other", guild_ids=["111"]))

        assert registry.lookup("ping", "111", is_global=False) is None
        assert registry.lookup("ping", None, is_global=False) is None

    def test_scoped_handler_reachable_under_each_scope(self):
        registry = HandlerRegistry("command")
        admin = _Command("admin", guild_ids=["111", "222", "333"])
        _insert(registry, admin)

        for scope_id in ("111", "222", "333"):
            assert registry.lookup("admin", scope_id, is_global=False) is admin

    def test_scoped_handler_unreachable_elsewhere(self):
        registry = HandlerRegistry("command")
        _insert(registry, _Command("admin", guild_ids=["111", "222"]))

        assert registry.lookup("admin", "999", is_global=False) is None
        assert registry.lookup("admin", None, is_global=False) is None
        assert registry.lookup("admin", "111", is_global=True) is None

    def test_integer_scope_ids_normalized_to_strings(self):
        registry = HandlerRegistry("command")
        admin = _Command("admin", guild_ids=[111, 111, 222])
        _insert(registry, admin)

        assert admin.scope_ids == ("111", "222")
        assert registry.lookup("admin", "111", is_global=False) is admin

    def test_duplicate_global_identity_rejected(self):
        registry = HandlerRegistry("command")
        _insert(registry, _Command("ping"))

        with pytest.raises(RegistryError, match="Duplicate global command"):
            _insert(registry, _Command("ping"))

    def test_duplicate_identity_in_same_scope_rejected(self):
        registry = HandlerRegistry("command")
        _insert(registry, _Command("admin", guild_ids=["111"]))

        with pytest.raises(RegistryError, match="guild scope 111"):
            _insert(registry, _Command("admin", guild_ids=["111"]))

    def test_same_identity_in_different_scopes_allowed(self):
        registry = HandlerRegistry("command")
        first = _Command("admin", guild_ids=["111"])
        second = _Command("admin", guild_ids=["222"])
        _insert(registry, first)
        _insert(registry, second)

        assert registry.lookup("admin", "111", is_global=False) is first
        assert registry.lookup("admin", "222", is_global=False) is second

    def test_global_after_scoped_identity_rejected(self):
        registry = HandlerRegistry("command")
        _insert(registry, _Command("admin", guild_ids=["111", "222"]))

        with pytest.raises(RegistryError, match="both globally and in guild scope") as exc_info:
            _insert(registry, _Command("admin"))
        assert exc_info.value.identity == "admin"

    def test_scoped_after_global_identity_rejected(self):
        registry = HandlerRegistry("command")
        _insert(registry, _Command("admin"))

        with pytest.raises(RegistryError, match="both globally"):
            _insert(registry, _Command("admin", guild_ids=["111"]))

    def test_insert_after_seal_rejected(self):
        registry = HandlerRegistry("command")
        registry.seal()

        with pytest.raises(RegistryError, match="sealed"):
            registry.insert_global(_Command("ping"))
        assert registry.sealed is True

    def test_scopes_and_len(self):
        registry = HandlerRegistry("command")
        _insert(registry, _Command("ping"))
        _insert(registry, _Command("admin", guild_ids=["111", "222"]))
        _insert(registry, _Command("mod", guild_ids=["111"]))

        scopes = dict(registry.scopes())
        assert sorted(c.identity for c in scopes["111"]) == ["admin", "mod"]
        assert [c.identity for c in scopes["222"]] == ["admin"]
        assert [c.identity for c in registry.global_handlers()] == ["ping"]
        # admin counts once despite two scopes
        assert len(registry) == 3

    @pytest.mark.asyncio
    async def test_wait_sealed_blocks_until_seal(self):
        registry = HandlerRegistry("command")
        waiter = asyncio.create_task(registry.wait_sealed())
        await asyncio.sleep(0)
        assert not waiter.done()

        registry.seal()
        await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_wait_sealed_returns_immediately_when_sealed(self):
        registry = HandlerRegistry("command")
        registry.seal()
        await asyncio.wait_for(registry.wait_sealed(), timeout=1)


class TestListenerRegistry:
    """Tests for fan-out listener resolution."""

    def test_multiple_listeners_share_event_name(self):
        registry = ListenerRegistry()
        first = _Listener("ready")
        second = _Listener("ready", once=True)
        _insert(registry, first)
        _insert(registry, second)

        assert registry.lookup("ready") == (first, second)

    def test_lookup_unknown_event_is_empty(self):
        registry = ListenerRegistry()
        assert registry.lookup("guild_join") == ()

    def test_lookup_merges_partitions_in_registration_order(self):
        registry = ListenerRegistry()
        scoped = _Listener("message")
        first = _Listener("message")
        registry.insert_scoped("111", scoped)
        registry.insert_scoped("222", scoped)
        _insert(registry, first)

        # A listener registered under two scopes fires once
        assert registry.lookup("message") == (scoped, first)
        assert len(registry) == 2

    def test_on_prefix_is_stripped(self):
        listener = _Listener("on_ready")
        assert listener.event == "ready"

    def test_insert_after_seal_rejected(self):
        registry = ListenerRegistry()
        registry.seal()
        with pytest.raises(RegistryError):
            registry.insert_global(_Listener("ready"))
