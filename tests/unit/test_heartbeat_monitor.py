"""Unit tests for HeartbeatMonitor timers and the teardown they trigger."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from mmg.configurations.configuration_constants import Channels, ServerEvents
from mmg.server.heartbeat_monitor import HeartbeatMonitor


def _make_monitor(on_timeout=None, socketio=None):
    return HeartbeatMonitor(
        socketio=socketio or MagicMock(),
        on_timeout=on_timeout or MagicMock(),
        interval_s=5,
        timeout_s=60,
    )


class TestHeartbeatMonitor:

    def test_arm_schedules_timeout(self, fake_timers):
        monitor = _make_monitor()
        monitor.arm("admin1")

        pending = fake_timers.pending("_expire")
        assert len(pending) == 1
        assert pending[0].delay == 60
        assert pending[0].args == ("admin1",)
        assert monitor.is_armed("admin1")

    def test_acknowledge_replaces_pending_timeout(self, fake_timers):
        monitor = _make_monitor()
        monitor.arm("admin1")
        first = fake_timers.timers[-1]

        monitor.acknowledge("admin1")
        second = fake_timers.timers[-1]

        assert first.cancelled
        assert not second.cancelled
        assert fake_timers.pending("_expire") == [second]

    def test_timers_are_per_admin(self, fake_timers):
        monitor = _make_monitor()
        monitor.arm("admin1")
        monitor.arm("admin2")
        monitor.acknowledge("admin1")
        assert len(fake_timers.pending("_expire")) == 2

    def test_expiry_calls_teardown(self, fake_timers):
        on_timeout = MagicMock()
        monitor = _make_monitor(on_timeout=on_timeout)
        monitor.arm("admin1")

        fake_timers.pending("_expire")[0].fire()

        on_timeout.assert_called_once_with("admin1")
        assert not monitor.is_armed("admin1")

    def test_disarm_cancels(self, fake_timers):
        monitor = _make_monitor()
        monitor.arm("admin1")
        monitor.disarm("admin1")
        assert fake_timers.pending("_expire") == []
        assert not monitor.is_armed("admin1")

    def test_disarm_unknown_admin_is_noop(self, fake_timers):
        _make_monitor().disarm("nobody")

    def test_ping_targets_admin_channel(self):
        socketio = MagicMock()
        _make_monitor(socketio=socketio).ping()
        socketio.emit.assert_called_once_with(ServerEvents.Heartbeat, room=Channels.Admins)

    def test_start_spawns_single_ping_loop(self):
        with patch("mmg.server.heartbeat_monitor.eventlet") as mock_eventlet:
            monitor = _make_monitor()
            monitor.start()
            monitor.start()
            assert mock_eventlet.spawn.call_count == 1

    def test_stop_disarms_everything(self, fake_timers):
        monitor = _make_monitor()
        monitor.arm("admin1")
        monitor.arm("admin2")
        monitor.stop()
        assert fake_timers.pending("_expire") == []


class TestHeartbeatTeardown:
    """Timeout expiry through the game service destroys the room."""

    def test_silent_admin_loses_room(self, service, socketio, fake_timers, emitted):
        service.open_room("r1", "admin1")
        service.join_room("r1", "alice", "p1")
        service.join_room("r1", "bob", "p2")

        fake_timers.pending("_expire")[0].fire()

        assert not service.probe_room("r1")
        assert service.registry.room_for_admin("admin1") is None
        assert service.registry.room_for_player("p1") is None
        assert service.registry.room_for_player("p2") is None
        assert emitted(ServerEvents.RoomClosed) == [(("r1",), {"room": "r1"})]
        socketio.close_room.assert_called_once_with("r1")

    def test_acknowledged_admin_keeps_room(self, service, fake_timers):
        service.open_room("r1", "admin1")
        first = fake_timers.pending("_expire")[0]

        service.acknowledge_heartbeat("admin1")

        assert first.cancelled
        assert service.probe_room("r1")
        assert len(fake_timers.pending("_expire")) == 1

    def test_ack_from_admin_without_room_is_ignored(self, service, fake_timers):
        service.acknowledge_heartbeat("stranger")
        assert fake_timers.pending("_expire") == []
