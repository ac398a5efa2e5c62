from __future__ import annotations

import random
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from models import SearchCenter, Venue
from services.selection import SelectionEngine
from services.variants import VariantConfig


@dataclass
class RouletteSession:
    session_id: str
    variant: VariantConfig
    engine: SelectionEngine
    center: Optional[SearchCenter] = None
    people: Optional[int] = None
    meal_time: Optional[str] = None
    history: List[Venue] = field(default_factory=list)


class SessionManager:
    """Simple in-memory session manager."""

    def __init__(self, ttl_sec: int = 3600, max_history: int = 10) -> None:
        self._sessions: Dict[str, RouletteSession] = {}
        self._last_access: Dict[str, float] = {}
        self._lock = threading.Lock()
        self.ttl_sec = ttl_sec
        self.max_history = max_history

    def get(self, session_id: str) -> Optional[RouletteSession]:
        with self._lock:
            self._cleanup()
            session = self._sessions.get(session_id)
            if session is not None:
                self._last_access[session_id] = time.time()
            return session

    def open(
        self,
        session_id: str,
        variant: VariantConfig,
        rng: Optional[random.Random] = None,
    ) -> RouletteSession:
        """Return the session for `session_id`, replacing it if the variant changed."""
        with self._lock:
            self._cleanup()
            session = self._sessions.get(session_id)
            if session is None or session.variant.name != variant.name:
                engine = SelectionEngine.from_timing(variant.animation_ms, variant.tick_ms, rng=rng)
                session = RouletteSession(session_id=session_id, variant=variant, engine=engine)
                self._sessions[session_id] = session
            self._last_access[session_id] = time.time()
            return session

    def record_pick(self, session_id: str, venue: Venue) -> None:
        session = self.get(session_id)
        if session is None:
            return
        session.history.append(venue)
        if len(session.history) > self.max_history:
            session.history[:] = session.history[-self.max_history :]

    def reset(self, session_id: str) -> None:
        """Drop a session and its selection state."""
        if not session_id:
            return
        with self._lock:
            self._sessions.pop(session_id, None)
            self._last_access.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

    def _cleanup(self) -> None:
        """Remove expired sessions."""
        now = time.time()
        expired = [
            sid for sid, last in self._last_access.items()
            if now - last > self.ttl_sec
        ]
        for sid in expired:
            del self._sessions[sid]
            del self._last_access[sid]


