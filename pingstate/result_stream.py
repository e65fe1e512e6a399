"""
Result Stream - results of continuous sessions, tagged with their ping id.
Keeps a bounded history for replay and fans new results out to SSE followers.
"""
import asyncio
import itertools
import json
import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional
from .monitors import PingResult

logger = logging.getLogger("PingState.ResultStream")

FOLLOWER_QUEUE_SIZE = 100


@dataclass(frozen=True)
class SessionResult:
    seq: int
    ping_id: str
    result: PingResult

    def to_dict(self) -> dict:
        return {
            "seq": self.seq,
            "ping_id": self.ping_id,
            "result": self.result.to_dict(),
        }

    def to_sse(self) -> str:
        return f"id: {self.seq}\nevent: ping_result\ndata: {json.dumps(self.to_dict())}\n\n"


class ResultStream:
    """
    Sequence-numbered log of session results.

    Followers may watch a single ping id or every session. All calls are
    made from the event loop thread, so no locking is needed.
    """

    def __init__(self, history: int = 500):
        self._history: Deque[SessionResult] = deque(maxlen=history)
        self._followers: Dict[asyncio.Queue, Optional[str]] = {}
        self._seq = itertools.count(1)

    def publish(self, ping_id: str, result: PingResult) -> SessionResult:
        entry = SessionResult(seq=next(self._seq), ping_id=ping_id, result=result)
        self._history.append(entry)

        for queue, wanted in self._followers.items():
            if wanted is not None and wanted != ping_id:
                continue
            if queue.full():
                # Slow follower loses its oldest result, not the connection
                queue.get_nowait()
            queue.put_nowait(entry)
        return entry

    def recent(self, ping_id: Optional[str] = None, limit: Optional[int] = None, after: int = 0) -> List[SessionResult]:
        """History entries newer than `after`, optionally for one ping id; the last `limit` of them"""
        matching = [
            e for e in self._history
            if e.seq > after and (ping_id is None or e.ping_id == ping_id)
        ]
        if limit is None:
            return matching
        return matching[-limit:] if limit > 0 else []

    def follow(self, ping_id: Optional[str] = None) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=FOLLOWER_QUEUE_SIZE)
        self._followers[queue] = ping_id
        logger.debug(f"Follower added for {ping_id or 'all sessions'} ({len(self._followers)} total)")
        return queue

    def unfollow(self, queue: asyncio.Queue):
        self._followers.pop(queue, None)
        logger.debug(f"Follower removed ({len(self._followers)} total)")

    @property
    def follower_count(self) -> int:
        return len(self._followers)
