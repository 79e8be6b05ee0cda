import asyncio
import contextlib
import logging
import threading
import time
import uuid
from typing import Callable, Dict, List, Optional

from config.settings import settings

cfg = settings.sessions


class SessionRegistry:
    """In-memory session id -> last activity map with a sliding expiry.

    All operations take an internal lock, so callers never synchronize. A
    background task started with ``start()`` evicts sessions idle for longer
    than ``ttl_seconds``.
    """

    def __init__(
        self,
        ttl_seconds: float = cfg.ttl_seconds,
        sweep_interval: float = cfg.sweep_interval_seconds,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._sessions: Dict[str, float] = {}
        self._lock = threading.Lock()
        self._sweep_task: Optional[asyncio.Task] = None
        self.logger = logging.getLogger("app")

    def touch(self, session_id: Optional[str] = None) -> str:
        now = self._clock()
        with self._lock:
            seen = self._sessions.get(session_id) if session_id else None
            if seen is not None:
                if now - seen <= self.ttl_seconds:
                    # never move backwards if the clock does
                    self._sessions[session_id] = max(seen, now)
                    return session_id
                # idle past the ttl but not swept yet
                del self._sessions[session_id]
            new_id = str(uuid.uuid4())
            self._sessions[new_id] = now
        self.logger.info("Created session", extra={"extra_data": {"session_id": new_id}})
        return new_id

    def remove(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def last_seen(self, session_id: str) -> Optional[float]:
        with self._lock:
            return self._sessions.get(session_id)

    def sweep(self) -> int:
        cutoff = self._clock() - self.ttl_seconds
        with self._lock:
            expired = [sid for sid, seen in self._sessions.items() if seen < cutoff]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            self.logger.info(f"Swept {len(expired)} expired sessions")
        return len(expired)

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep()
            except Exception:
                self.logger.exception("Session sweep failed")

    async def start(self) -> None:
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop())
            self.logger.info("Session sweep task started")

    async def stop(self) -> None:
        if self._sweep_task:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
            self.logger.info("Session sweep task stopped")
