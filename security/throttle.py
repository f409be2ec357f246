"""Failed-login throttling keyed by client IP.

The counter store is injected: ``MemoryThrottleStore`` keeps counters in a
lock-guarded dict, ``DatabaseThrottleStore`` keeps them in the
``login_attempts`` table. Both apply every increment atomically so
concurrent failures from one IP are never lost.
"""
import math
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Tuple

from flask import current_app
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from models import db
from models.login_attempt import LoginAttempt
from utils.clock import utcnow

ADMIN_PREFIX = "admin-login:"
USER_PREFIX = "user-login:"

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_DECAY_SECONDS = 300


def throttle_key(prefix: str, ip: str) -> str:
    return prefix + (ip or "unknown")


@dataclass(frozen=True)
class ThrottleRecord:
    count: int
    expires_at: datetime


@dataclass(frozen=True)
class ThrottleStatus:
    allowed: bool
    retry_after: int = 0


class ThrottleStore:
    """Key -> {count, expires_at}. Expired records must read as absent."""

    def get(self, key: str, now: datetime) -> Optional[ThrottleRecord]:
        raise NotImplementedError

    def increment(self, key: str, window_seconds: int, now: datetime) -> ThrottleRecord:
        """Add one to ``key`` and re-arm its expiry to ``now + window_seconds``."""
        raise NotImplementedError

    def increment_below(self, key: str, limit: int, window_seconds: int,
                        now: datetime) -> Tuple[bool, ThrottleRecord]:
        """Increment only while the count is under ``limit``.

        Returns (incremented, record) where record is the state after the call.
        """
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def prune(self, now: datetime) -> int:
        """Drop every expired record; returns how many were removed."""
        raise NotImplementedError


class MemoryThrottleStore(ThrottleStore):
    # expired keys are swept at most this often, on the write path
    SWEEP_INTERVAL_SECONDS = 60

    def __init__(self):
        self._lock = threading.Lock()
        self._data: Dict[str, ThrottleRecord] = {}
        self._next_sweep = None

    def _sweep(self, now):
        expired = [k for k, rec in self._data.items() if rec.expires_at <= now]
        for k in expired:
            del self._data[k]
        self._next_sweep = now + timedelta(seconds=self.SWEEP_INTERVAL_SECONDS)
        return len(expired)

    def _maybe_sweep(self, now):
        if self._next_sweep is None or now >= self._next_sweep:
            self._sweep(now)

    def _live(self, key, now):
        rec = self._data.get(key)
        if rec is not None and rec.expires_at <= now:
            del self._data[key]
            return None
        return rec

    def get(self, key, now):
        with self._lock:
            return self._live(key, now)

    def increment(self, key, window_seconds, now):
        with self._lock:
            self._maybe_sweep(now)
            rec = self._live(key, now)
            count = rec.count + 1 if rec else 1
            rec = ThrottleRecord(count, now + timedelta(seconds=window_seconds))
            self._data[key] = rec
            return rec

    def increment_below(self, key, limit, window_seconds, now):
        with self._lock:
            self._maybe_sweep(now)
            rec = self._live(key, now)
            if rec is not None and rec.count >= limit:
                return False, rec
            count = rec.count + 1 if rec else 1
            rec = ThrottleRecord(count, now + timedelta(seconds=window_seconds))
            self._data[key] = rec
            return True, rec

    def delete(self, key):
        with self._lock:
            self._data.pop(key, None)

    def prune(self, now):
        with self._lock:
            return self._sweep(now)


class DatabaseThrottleStore(ThrottleStore):
    """Counters in ``login_attempts``; increments are single UPDATE statements."""

    def _read(self, key, now):
        row = db.session.execute(
            select(LoginAttempt.count, LoginAttempt.expires_at).where(LoginAttempt.key == key)
        ).first()
        if row is None:
            return None
        # unpack: Row.count is the tuple method, not the column
        count, expires_at = row
        if expires_at <= now:
            return None
        return ThrottleRecord(count, expires_at)

    def _delete_expired(self, now) -> int:
        result = db.session.execute(
            delete(LoginAttempt)
            .where(LoginAttempt.expires_at <= now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _insert_fresh(self, key, expires_at, now) -> bool:
        # clears this key's stale row along with every other expired one
        self._delete_expired(now)
        db.session.add(LoginAttempt(key=key, count=1, expires_at=expires_at))
        try:
            db.session.commit()
            return True
        except IntegrityError:
            # another request created the row first
            db.session.rollback()
            return False

    def get(self, key, now):
        return self._read(key, now)

    def increment(self, key, window_seconds, now):
        expires_at = now + timedelta(seconds=window_seconds)
        while True:
            result = db.session.execute(
                update(LoginAttempt)
                .where(LoginAttempt.key == key, LoginAttempt.expires_at > now)
                .values(count=LoginAttempt.count + 1, expires_at=expires_at)
                .execution_options(synchronize_session=False)
            )
            db.session.commit()
            if result.rowcount:
                return self._read(key, now) or ThrottleRecord(1, expires_at)
            if self._insert_fresh(key, expires_at, now):
                return ThrottleRecord(1, expires_at)

    def increment_below(self, key, limit, window_seconds, now):
        expires_at = now + timedelta(seconds=window_seconds)
        while True:
            result = db.session.execute(
                update(LoginAttempt)
                .where(
                    LoginAttempt.key == key,
                    LoginAttempt.expires_at > now,
                    LoginAttempt.count < limit,
                )
                .values(count=LoginAttempt.count + 1, expires_at=expires_at)
                .execution_options(synchronize_session=False)
            )
            db.session.commit()
            if result.rowcount:
                return True, self._read(key, now) or ThrottleRecord(1, expires_at)

            rec = self._read(key, now)
            if rec is not None:
                return False, rec
            if self._insert_fresh(key, expires_at, now):
                return True, ThrottleRecord(1, expires_at)

    def delete(self, key):
        db.session.execute(delete(LoginAttempt).where(LoginAttempt.key == key))
        db.session.commit()

    def prune(self, now):
        removed = self._delete_expired(now)
        db.session.commit()
        return removed


class AttemptThrottle:
    def __init__(self, store: ThrottleStore, max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 decay_seconds: int = DEFAULT_DECAY_SECONDS,
                 clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.max_attempts = max_attempts
        self.decay_seconds = decay_seconds
        self.clock = clock

    def _retry_after(self, rec: ThrottleRecord, now: datetime) -> int:
        # rounded up so a blocked caller never sees 0
        return max(1, math.ceil((rec.expires_at - now).total_seconds()))

    def check(self, key: str) -> ThrottleStatus:
        now = self.clock()
        rec = self.store.get(key, now)
        if rec is None or rec.count < self.max_attempts:
            return ThrottleStatus(True, 0)
        return ThrottleStatus(False, self._retry_after(rec, now))

    def record_failure(self, key: str, window_seconds: int = None) -> int:
        rec = self.store.increment(key, window_seconds or self.decay_seconds, self.clock())
        return rec.count

    def attempt(self, key: str) -> ThrottleStatus:
        """Check and count one attempt in a single atomic step.

        The attempt stays counted as a failure unless ``clear`` is called.
        """
        now = self.clock()
        recorded, rec = self.store.increment_below(key, self.max_attempts, self.decay_seconds, now)
        if recorded:
            return ThrottleStatus(True, 0)
        return ThrottleStatus(False, self._retry_after(rec, now))

    def attempts(self, key: str) -> int:
        rec = self.store.get(key, self.clock())
        return rec.count if rec else 0

    def clear(self, key: str) -> None:
        self.store.delete(key)

    def prune(self) -> int:
        return self.store.prune(self.clock())


def build_store(kind: str) -> ThrottleStore:
    if kind == "memory":
        return MemoryThrottleStore()
    if kind == "database":
        return DatabaseThrottleStore()
    raise ValueError("Unknown THROTTLE_STORE %r" % kind)


def init_throttle(app):
    app.extensions["login_throttle"] = AttemptThrottle(
        build_store(app.config.get("THROTTLE_STORE", "database")),
        max_attempts=app.config.get("LOGIN_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
        decay_seconds=app.config.get("LOGIN_DECAY_SECONDS", DEFAULT_DECAY_SECONDS),
    )


def get_throttle() -> AttemptThrottle:
    return current_app.extensions["login_throttle"]
