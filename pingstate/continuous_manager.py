"""Registry of continuous ping sessions keyed by caller-supplied id"""
import asyncio
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from .config import DEFAULT_PORT, DEFAULT_INTERVAL_MS
from .monitors import PingResult
from .ping_service import PingService

logger = logging.getLogger("PingState.ContinuousManager")

SessionObserver = Callable[[str, PingResult], Any]


@dataclass
class ContinuousSession:
    ping_id: str
    host: str
    port: int
    interval_ms: int
    task: Optional[asyncio.Task] = None
    started_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "ping_id": self.ping_id,
            "host": self.host,
            "port": self.port,
            "interval_ms": self.interval_ms,
            "started_at": self.started_at,
        }


class ContinuousPingManager:
    """
    Owns the id -> session map. At most one live session per id:
    starting with an id in use cancels the old session first.
    """

    def __init__(self, service: PingService, on_result: Optional[SessionObserver] = None):
        self.service = service
        self.on_result = on_result
        self._sessions: Dict[str, ContinuousSession] = {}
        self._lock = threading.Lock()

    def start(self, ping_id: str, host: str, port: int = DEFAULT_PORT, interval_ms: int = DEFAULT_INTERVAL_MS) -> ContinuousSession:
        session = ContinuousSession(ping_id=ping_id, host=host, port=port, interval_ms=interval_ms)

        with self._lock:
            previous = self._sessions.pop(ping_id, None)
            if previous is not None:
                previous.task.cancel()
                logger.info(f"Replacing continuous ping {ping_id} ({previous.host}:{previous.port})")

            session.task = self.service.start_continuous_ping(
                host, port, interval_ms, self._make_callback(session)
            )
            session.task.add_done_callback(lambda _: self._forget(session))
            self._sessions[ping_id] = session

        logger.info(f"Continuous ping {ping_id} started for {host}:{port}")
        return session

    def stop(self, ping_id: str) -> bool:
        """Cancel and discard a session. Unknown ids are ignored."""
        with self._lock:
            session = self._sessions.pop(ping_id, None)
        if session is None:
            return False

        session.task.cancel()
        logger.info(f"Continuous ping {ping_id} stopped")
        return True

    def active_sessions(self) -> List[ContinuousSession]:
        with self._lock:
            return list(self._sessions.values())

    def is_active(self, ping_id: str) -> bool:
        with self._lock:
            return ping_id in self._sessions

    def cleanup(self):
        """Stop every session. Safe to call repeatedly."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()

        for session in sessions:
            session.task.cancel()
        if sessions:
            logger.info(f"Stopped {len(sessions)} continuous ping sessions")

    def _make_callback(self, session: ContinuousSession):
        async def deliver(result: PingResult):
            # A replaced or stopped session must not publish
            with self._lock:
                current = self._sessions.get(session.ping_id) is session
            if not current or self.on_result is None:
                return
            ret = self.on_result(session.ping_id, result)
            if asyncio.iscoroutine(ret):
                await ret

        return deliver

    def _forget(self, session: ContinuousSession):
        # Covers loops cancelled from outside (service shutdown)
        with self._lock:
            if self._sessions.get(session.ping_id) is session:
                del self._sessions[session.ping_id]
