"""
Shared pytest fixtures for mmg tests.

Provides:
- config: GameConfig with data export disabled
- fake_timers: Replaces eventlet scheduling in the server modules with
  manually fired timers
- socketio: MagicMock standing in for the Flask-SocketIO server
- service: MarketGameService wired to the two fakes above
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from mmg.configurations.game_config import GameConfig
from mmg.server.game_service import MarketGameService

# ---------------------------------------------------------------------------
# Timer helpers
# ---------------------------------------------------------------------------


class FakeTimer:
    """Stands in for the GreenThread returned by eventlet.spawn_after."""

    def __init__(self, delay, fn, *args):
        self.delay = delay
        self.fn = fn
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        assert not self.cancelled, "cancelled timers never fire"
        return self.fn(*self.args)


class FakeTimers:
    """Records every spawn and spawn_after call made through the patched eventlet modules."""

    def __init__(self):
        self.timers: list[FakeTimer] = []
        self.spawned: list[tuple] = []

    def spawn_after(self, delay, fn, *args):
        timer = FakeTimer(delay, fn, *args)
        self.timers.append(timer)
        return timer

    def spawn(self, fn, *args):
        """Runs the greenlet body immediately and records it."""
        self.spawned.append((fn, args))
        return fn(*args)

    def pending(self, fn_name: str | None = None) -> list[FakeTimer]:
        return [
            t for t in self.timers
            if not t.cancelled and (fn_name is None or t.fn.__name__ == fn_name)
        ]


@pytest.fixture
def fake_timers():
    timers = FakeTimers()
    with patch("mmg.server.game_service.eventlet") as service_eventlet, \
            patch("mmg.server.heartbeat_monitor.eventlet") as heartbeat_eventlet:
        service_eventlet.spawn_after.side_effect = timers.spawn_after
        service_eventlet.spawn.side_effect = timers.spawn
        heartbeat_eventlet.spawn_after.side_effect = timers.spawn_after
        yield timers


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config():
    return GameConfig().data(save_game_data=False)


@pytest.fixture
def socketio():
    return MagicMock()


@pytest.fixture
def service(config, socketio, fake_timers):
    return MarketGameService(config=config, socketio=socketio)


@pytest.fixture
def emitted(socketio):
    """Returns a lookup of the (payload args, kwargs) the mock socketio emitted for an event."""

    def _emitted(event):
        return [
            (c.args[1:], c.kwargs)
            for c in socketio.emit.call_args_list
            if c.args and c.args[0] == event
        ]

    return _emitted


@pytest.fixture
def emitted_events(socketio):
    """Returns the ordered list of event names emitted so far."""
    return lambda: [c.args[0] for c in socketio.emit.call_args_list]
