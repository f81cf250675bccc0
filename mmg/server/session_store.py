from __future__ import annotations

import dataclasses
import logging
import secrets
import time

from mmg.server import thread_safe_collections
from mmg.utils.typing import PlayerID, SessionID

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Session:
    """
    Ties a resumable session id to a stable player id so a client that drops
    and reconnects keeps its identity (and therefore its room and position).
    """

    session_id: SessionID
    player_id: PlayerID
    created_at: float = dataclasses.field(default_factory=time.time)
    last_seen_at: float = dataclasses.field(default_factory=time.time)


def random_id() -> str:
    return secrets.token_urlsafe(8)


class SessionStore:
    """In-memory session table. Lives for the process lifetime only."""

    def __init__(self):
        self._sessions: dict[SessionID, Session] = thread_safe_collections.ThreadSafeDict()

    def resume(self, session_id: SessionID | None) -> Session | None:
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is not None:
            session.last_seen_at = time.time()
        return session

    def persist(self, session_id: SessionID, player_id: PlayerID) -> Session:
        session = Session(session_id=session_id, player_id=player_id)
        existing = self._sessions.get(session_id)
        if existing is not None:
            session.created_at = existing.created_at
        self._sessions[session_id] = session
        return session

    def mint(self) -> Session:
        session = self.persist(SessionID(random_id()), PlayerID(random_id()))
        logger.info(f"[Session] Minted session for new player {session.player_id}")
        return session

    def resume_or_mint(self, session_id: SessionID | None) -> Session:
        """Resume a known session, or mint a fresh one when resumption fails."""
        session = self.resume(session_id)
        if session is None:
            if session_id:
                logger.info("[Session] Unknown session id presented, minting a new one")
            return self.mint()
        logger.info(f"[Session] Resumed session for player {session.player_id}")
        return session

    def drop(self, session_id: SessionID) -> None:
        del self._sessions[session_id]

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id) -> bool:
        return session_id in self._sessions
