"""Delinquency sweep task: Redis lock handling around the engine run."""
from propflow.worker import tasks


class FakeLock:
    def __init__(self, acquired=True, owned=True):
        self.acquired = acquired
        self._owned = owned
        self.released = False

    def acquire(self, blocking=True):
        return self.acquired

    def owned(self):
        return self._owned

    def release(self):
        if not self._owned:
            raise AssertionError("released a lock held by someone else")
        self.released = True


class FakeRepo:
    def __init__(self, session_factory):
        self.closed = False

    def close(self):
        self.closed = True


def _patch(monkeypatch, lock):
    client = type("FakeRedis", (), {"lock": lambda self, key, timeout: lock})()
    monkeypatch.setattr(tasks.redis.Redis, "from_url", staticmethod(lambda url: client))
    monkeypatch.setattr(tasks, "SqlRepository", FakeRepo)
    monkeypatch.setattr(tasks, "run_delinquency_check", lambda engine: {"processed": 2, "actionsSent": 1})


def test_sweep_releases_its_lock(monkeypatch):
    lock = FakeLock()
    _patch(monkeypatch, lock)
    assert tasks.run_delinquency_sweep() == {"processed": 2, "actionsSent": 1}
    assert lock.released


def test_expired_lock_does_not_hide_the_sweep_result(monkeypatch):
    lock = FakeLock(owned=False)
    _patch(monkeypatch, lock)
    assert tasks.run_delinquency_sweep() == {"processed": 2, "actionsSent": 1}
    assert not lock.released


def test_overlapping_sweep_is_skipped(monkeypatch):
    lock = FakeLock(acquired=False)
    _patch(monkeypatch, lock)
    assert tasks.run_delinquency_sweep() == {"skipped": True}
