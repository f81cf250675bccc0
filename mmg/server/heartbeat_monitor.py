"""
Admin liveness monitoring.

Every admin connection is pinged on a fixed interval. Each admin has exactly
one outstanding timeout greenlet; an acknowledgment cancels it and arms a
fresh one. When a timeout fires the owning room is torn down through the
callback supplied by the game service.
"""
from __future__ import annotations

import logging
import threading
import typing

import eventlet

from mmg.configurations.configuration_constants import Channels, ServerEvents
from mmg.server import thread_safe_collections
from mmg.server.errors import AdminHeartbeatTimeout
from mmg.utils.typing import PlayerID

if typing.TYPE_CHECKING:
    import flask_socketio

logger = logging.getLogger(__name__)


class HeartbeatMonitor:

    def __init__(
        self,
        socketio: flask_socketio.SocketIO,
        on_timeout: typing.Callable[[PlayerID], None],
        interval_s: float,
        timeout_s: float,
    ):
        self.socketio = socketio
        self.on_timeout = on_timeout
        self.interval_s = interval_s
        self.timeout_s = timeout_s

        # admin_id -> pending timeout greenlet
        self._timers = thread_safe_collections.ThreadSafeDict()
        # Makes cancel-then-replace of a timer handle atomic.
        self._lock = threading.Lock()

        self._ping_running = False
        self._ping_greenlet = None

    def start(self) -> None:
        """Start the periodic ping to every admin connection."""
        if self._ping_running:
            logger.warning("[Heartbeat] Ping loop already running")
            return

        self._ping_running = True

        def _ping_loop():
            logger.info(f"[Heartbeat] Ping loop started (interval: {self.interval_s}s)")
            while self._ping_running:
                try:
                    self.ping()
                except Exception as e:
                    logger.error(f"[Heartbeat] Error in ping loop: {e}")
                eventlet.sleep(self.interval_s)

        self._ping_greenlet = eventlet.spawn(_ping_loop)

    def stop(self) -> None:
        self._ping_running = False
        self._ping_greenlet = None
        for admin_id in list(self._timers.snapshot()):
            self.disarm(admin_id)

    def ping(self) -> None:
        self.socketio.emit(ServerEvents.Heartbeat, room=Channels.Admins)

    def arm(self, admin_id: PlayerID) -> None:
        """Schedule a timeout for this admin, replacing any pending one."""
        with self._lock:
            previous = self._timers.pop(admin_id, None)
            if previous is not None:
                previous.cancel()
            self._timers[admin_id] = eventlet.spawn_after(
                self.timeout_s, self._expire, admin_id
            )

    def acknowledge(self, admin_id: PlayerID) -> None:
        self.arm(admin_id)

    def disarm(self, admin_id: PlayerID) -> None:
        with self._lock:
            timer = self._timers.pop(admin_id, None)
            if timer is not None:
                timer.cancel()

    def is_armed(self, admin_id: PlayerID) -> bool:
        return admin_id in self._timers

    def _expire(self, admin_id: PlayerID) -> None:
        with self._lock:
            self._timers.pop(admin_id, None)

        error = AdminHeartbeatTimeout(admin_id)
        logger.warning(
            f"[Heartbeat] No response from admin {admin_id} in {self.timeout_s}s "
            f"({type(error).__name__}), tearing down their room"
        )
        self.on_timeout(admin_id)
