"""Code registry — live share sessions keyed by their 6-digit code.

All mutation happens synchronously between event-loop suspension points, so
the collision check in ``generate_code`` and the insert in ``create`` cannot
interleave with another request.
"""

import asyncio
import logging
import secrets
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Protocol

from api.sessions.models.share_session import FileRef, ShareSession
from errors import CapacityError

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999
CODE_SPACE = CODE_MAX - CODE_MIN + 1


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules one-shot timers on the running event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def random_code() -> str:
    """Uniform 6-digit code in CODE_MIN..CODE_MAX."""
    return str(CODE_MIN + secrets.randbelow(CODE_SPACE))


class CodeRegistry:
    def __init__(
        self,
        ttl: timedelta = timedelta(minutes=10),
        scheduler: Scheduler | None = None,
        clock: Callable[[], datetime] = utc_now,
        code_factory: Callable[[], str] = random_code,
        max_attempts: int = 1000,
    ):
        self.ttl = ttl
        self._scheduler = scheduler or AsyncioScheduler()
        self._clock = clock
        self._code_factory = code_factory
        self._max_attempts = max_attempts
        self._sessions: dict[str, ShareSession] = {}
        self._timers: dict[str, TimerHandle] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, code: str) -> bool:
        return code in self._sessions

    def generate_code(self) -> str:
        """Draw random codes until one is free, giving up after max_attempts."""
        if len(self._sessions) >= CODE_SPACE:
            raise CapacityError("Every share code is in use")

        for _ in range(self._max_attempts):
            code = self._code_factory()
            if code not in self._sessions:
                return code

        raise CapacityError(f"No free share code after {self._max_attempts} attempts")

    def create(self, files: Sequence[FileRef]) -> str:
        if not files:
            raise ValueError("A share session needs at least one file")

        code = self.generate_code()
        created_at = self._clock()
        session = ShareSession(
            code=code,
            files=tuple(files),
            created_at=created_at,
            expires_at=created_at + self.ttl,
        )
        self._sessions[code] = session
        self._timers[code] = self._scheduler.call_later(
            self.ttl.total_seconds(), lambda: self._expire(session)
        )
        logger.info("Created session %s with %d file(s)", code, len(session.files))
        return code

    def resolve(self, code: str) -> ShareSession | None:
        """Look up a live session. Lookups never extend its lifetime."""
        session = self._sessions.get(code)
        if session is None or self._clock() >= session.expires_at:
            return None
        return session

    def remove(self, code: str) -> None:
        """Forget a session. Remote blobs are left untouched."""
        timer = self._timers.pop(code, None)
        if timer is not None:
            timer.cancel()
        if self._sessions.pop(code, None) is not None:
            logger.info("Removed session %s", code)

    def clear(self) -> None:
        for code in list(self._sessions):
            self.remove(code)

    def _expire(self, session: ShareSession) -> None:
        # A stale timer must never remove a later session that reused the code
        if self._sessions.get(session.code) is not session:
            return
        self._timers.pop(session.code, None)
        del self._sessions[session.code]
        logger.info("Code %s expired", session.code)
