import threading

import pytest

from app import create_app
from config import TestingConfig
from models import db
from models.login_attempt import LoginAttempt
from security.throttle import (
    ADMIN_PREFIX, USER_PREFIX, AttemptThrottle, DatabaseThrottleStore, MemoryThrottleStore,
    build_store, throttle_key,
)
from tests.conftest import FakeClock

KEY = throttle_key(ADMIN_PREFIX, "203.0.113.7")


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def throttle(fake_clock):
    return AttemptThrottle(MemoryThrottleStore(), max_attempts=5, decay_seconds=300, clock=fake_clock)


def test_key_derivation():
    assert throttle_key(ADMIN_PREFIX, "10.0.0.1") == "admin-login:10.0.0.1"
    assert throttle_key(ADMIN_PREFIX, "10.0.0.1") != throttle_key(ADMIN_PREFIX, "10.0.0.2")
    assert throttle_key(ADMIN_PREFIX, "10.0.0.1") != throttle_key(USER_PREFIX, "10.0.0.1")


def test_blocks_after_five_failures(throttle):
    for _ in range(4):
        throttle.record_failure(KEY, 300)
        assert throttle.check(KEY).allowed

    throttle.record_failure(KEY, 300)
    status = throttle.check(KEY)
    assert not status.allowed
    assert 0 < status.retry_after <= 300


def test_retry_after_counts_down_and_lifts(throttle, fake_clock):
    for _ in range(5):
        throttle.record_failure(KEY, 300)

    fake_clock.advance(120)
    assert throttle.check(KEY).retry_after == 180

    fake_clock.advance(179.5)
    status = throttle.check(KEY)
    assert not status.allowed
    assert status.retry_after == 1

    fake_clock.advance(0.5)
    assert throttle.check(KEY).allowed
    assert throttle.attempts(KEY) == 0


def test_each_failure_rearms_window(throttle, fake_clock):
    throttle.record_failure(KEY, 300)
    fake_clock.advance(250)
    throttle.record_failure(KEY, 300)
    fake_clock.advance(250)
    # first failure would have expired by now, the second re-armed the window
    assert throttle.attempts(KEY) == 2


def test_clear_resets_counter(throttle):
    for _ in range(5):
        throttle.record_failure(KEY)
    throttle.clear(KEY)

    throttle.record_failure(KEY)
    assert throttle.check(KEY).allowed
    assert throttle.attempts(KEY) == 1


def test_keys_do_not_collide(throttle):
    for _ in range(5):
        throttle.record_failure(KEY)
    other = throttle_key(ADMIN_PREFIX, "198.51.100.1")
    assert throttle.check(other).allowed


def test_attempt_counts_and_blocks(throttle):
    for _ in range(5):
        assert throttle.attempt(KEY).allowed
    status = throttle.attempt(KEY)
    assert not status.allowed
    assert status.retry_after == 300
    # a blocked attempt is not counted
    assert throttle.attempts(KEY) == 5


def test_concurrent_failures_are_not_lost(throttle):
    threads = [threading.Thread(target=throttle.record_failure, args=(KEY,)) for _ in range(50)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert throttle.attempts(KEY) == 50


def test_concurrent_attempts_share_five_slots(throttle):
    results = []
    lock = threading.Lock()

    def worker():
        status = throttle.attempt(KEY)
        with lock:
            results.append(status.allowed)

    threads = [threading.Thread(target=worker) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 5
    assert results.count(False) == 15


def test_expired_keys_are_swept_from_memory(fake_clock):
    store = MemoryThrottleStore()
    throttle = AttemptThrottle(store, clock=fake_clock)
    for i in range(1000):
        throttle.record_failure(throttle_key(ADMIN_PREFIX, "10.0.%d.%d" % (i // 256, i % 256)))
    assert len(store._data) == 1000

    fake_clock.advance(10000)
    throttle.record_failure(KEY)
    assert list(store._data) == [KEY]


def test_prune_empties_memory_store(throttle, fake_clock):
    throttle.record_failure(KEY)
    throttle.record_failure(throttle_key(ADMIN_PREFIX, "198.51.100.1"))
    assert throttle.prune() == 0

    fake_clock.advance(300)
    assert throttle.prune() == 2
    assert throttle.store._data == {}


def test_build_store_rejects_unknown_kind():
    assert isinstance(build_store("memory"), MemoryThrottleStore)
    with pytest.raises(ValueError):
        build_store("redis")


class TestDatabaseStore:
    @pytest.fixture
    def throttle(self, app, fake_clock):
        return AttemptThrottle(DatabaseThrottleStore(), max_attempts=5, decay_seconds=300, clock=fake_clock)

    def test_persists_counter_row(self, throttle):
        assert throttle.record_failure(KEY) == 1
        assert throttle.record_failure(KEY) == 2

        row = LoginAttempt.query.filter_by(key=KEY).one()
        assert row.count == 2

    def test_blocks_and_expires(self, throttle, fake_clock):
        for _ in range(5):
            throttle.record_failure(KEY)
        status = throttle.check(KEY)
        assert not status.allowed
        assert status.retry_after == 300

        fake_clock.advance(300)
        assert throttle.check(KEY).allowed
        # an expired row is replaced, not incremented
        assert throttle.record_failure(KEY) == 1

    def test_attempt_stops_at_limit(self, throttle):
        allowed = [throttle.attempt(KEY).allowed for _ in range(7)]
        assert allowed == [True] * 5 + [False] * 2
        assert LoginAttempt.query.filter_by(key=KEY).one().count == 5

    def test_clear_deletes_row(self, throttle):
        throttle.record_failure(KEY)
        throttle.clear(KEY)
        assert LoginAttempt.query.filter_by(key=KEY).first() is None

    def test_fresh_insert_prunes_every_expired_row(self, throttle, fake_clock):
        for i in range(10):
            throttle.record_failure(throttle_key(ADMIN_PREFIX, "10.0.0.%d" % i))
        assert LoginAttempt.query.count() == 10

        fake_clock.advance(301)
        throttle.record_failure(KEY)
        assert [row.key for row in LoginAttempt.query.all()] == [KEY]

    def test_prune_keeps_live_rows(self, throttle, fake_clock):
        throttle.record_failure(throttle_key(ADMIN_PREFIX, "10.0.0.1"))
        fake_clock.advance(200)
        throttle.record_failure(KEY)
        fake_clock.advance(150)

        assert throttle.prune() == 1
        assert [row.key for row in LoginAttempt.query.all()] == [KEY]


class TestDatabaseStoreThreads:
    """Each worker gets its own app context, so its own session and connection."""

    @pytest.fixture
    def file_app(self, tmp_path):
        class FileConfig(TestingConfig):
            SQLALCHEMY_DATABASE_URI = "sqlite:///" + str(tmp_path / "throttle.db")
            SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30}}
            THROTTLE_STORE = "database"

        app = create_app(FileConfig)
        with app.app_context():
            db.create_all()
        yield app
        with app.app_context():
            db.drop_all()
            db.engine.dispose()

    @pytest.fixture
    def throttle(self, fake_clock):
        return AttemptThrottle(DatabaseThrottleStore(), max_attempts=5, decay_seconds=300, clock=fake_clock)

    def _run(self, file_app, fn, count):
        results = []
        errors = []
        lock = threading.Lock()

        def worker():
            try:
                with file_app.app_context():
                    value = fn()
            except Exception as exc:  # surfaced by the assertion below
                with lock:
                    errors.append(exc)
                return
            with lock:
                results.append(value)

        threads = [threading.Thread(target=worker) for _ in range(count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        return results

    def test_concurrent_failures_are_not_lost(self, file_app, throttle):
        self._run(file_app, lambda: throttle.record_failure(KEY), 20)

        with file_app.app_context():
            assert throttle.attempts(KEY) == 20
            assert LoginAttempt.query.filter_by(key=KEY).one().count == 20

    def test_concurrent_attempts_share_five_slots(self, file_app, throttle):
        results = self._run(file_app, lambda: throttle.attempt(KEY).allowed, 20)

        assert results.count(True) == 5
        assert results.count(False) == 15
        with file_app.app_context():
            assert throttle.attempts(KEY) == 5
