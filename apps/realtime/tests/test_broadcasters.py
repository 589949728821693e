import pytest
from unittest.mock import AsyncMock, MagicMock
from django.test import override_settings

from apps.realtime import broadcasters
from apps.realtime.broadcasters import (
    InMemoryBroadcaster,
    NullBroadcaster,
    SocketIOBroadcaster,
    get_broadcaster,
)


class TestGetBroadcaster:
    """Tests for broadcaster selection from settings."""

    def test_test_settings_use_in_memory(self):
        assert isinstance(get_broadcaster(), InMemoryBroadcaster)

    @override_settings(REALTIME_BROADCASTER='apps.realtime.broadcasters.NullBroadcaster')
    def test_setting_selects_class(self):
        assert isinstance(get_broadcaster(), NullBroadcaster)

    def test_explicit_path(self):
        assert isinstance(get_broadcaster('apps.realtime.broadcasters.NullBroadcaster'), NullBroadcaster)

    def test_unknown_path(self):
        with pytest.raises(ImportError):
            get_broadcaster('apps.realtime.broadcasters.MissingBroadcaster')


class TestInMemoryBroadcaster:
    def test_records_to_outbox(self):
        InMemoryBroadcaster().publish('user:1', 'mess-update', {'type': 'x'})

        assert broadcasters.outbox == [
            {'room': 'user:1', 'event': 'mess-update', 'payload': {'type': 'x'}},
        ]


class TestNullBroadcaster:
    def test_drops_events(self):
        NullBroadcaster().publish('user:1', 'mess-update', {})

        assert broadcasters.outbox == []


class TestSocketIOBroadcaster:
    """Tests for emitting through the Socket.IO server."""

    def test_emits_to_room(self):
        server = MagicMock()
        server.emit = AsyncMock()

        SocketIOBroadcaster(server=server).publish('mess:1', 'mess-update', {'type': 'member-left'})

        server.emit.assert_awaited_once_with('mess-update', {'type': 'member-left'}, room='mess:1')

    def test_emit_failure_is_logged_not_raised(self, caplog):
        server = MagicMock()
        server.emit = AsyncMock(side_effect=RuntimeError('no loop'))

        SocketIOBroadcaster(server=server).publish('mess:1', 'mess-update', {})

        assert 'Failed to emit mess-update to room mess:1' in caplog.text

    def test_defaults_to_gateway_server(self):
        from apps.realtime.gateway import sio

        assert SocketIOBroadcaster().server is sio
