"""Kayıt kilidi unit testleri."""

import threading

import pytest

from src.services.errors import ConflictError, NotFoundError
from src.services.locking import RecordLock
from src.services.request_store import RequestStore
from src.services.storage import InMemoryStore


class TestRecordLock:

    def test_acquire_and_release(self):
        lock = RecordLock()
        assert lock.acquire("stock:A+", "admin-a") is True
        assert lock.is_locked("stock:A+") is True
        assert lock.release("stock:A+", "admin-a") is True
        assert lock.is_locked("stock:A+") is False

    def test_wrong_owner_cannot_release(self):
        lock = RecordLock()
        lock.acquire("stock:A+", "admin-a")
        assert lock.release("stock:A+", "admin-b") is False
        assert lock.is_locked("stock:A+") is True

    def test_keys_are_independent(self):
        lock = RecordLock()
        lock.acquire("stock:A+", "admin-a")
        assert lock.acquire("stock:B+", "admin-b", timeout=0.1) is True

    def test_hold_times_out_with_conflict(self):
        lock = RecordLock(timeout=0.05)
        held = threading.Event()
        done = threading.Event()

        def holder():
            with lock.hold("request:BR-1"):
                held.set()
                done.wait(2)

        t = threading.Thread(target=holder)
        t.start()
        held.wait(2)
        try:
            with pytest.raises(ConflictError):
                with lock.hold("request:BR-1"):
                    pass
        finally:
            done.set()
            t.join()
        assert lock.is_locked("request:BR-1") is False

    def test_hold_releases_on_error(self):
        lock = RecordLock()
        with pytest.raises(RuntimeError):
            with lock.hold("stock:O-"):
                raise RuntimeError("boom")
        assert lock.is_locked("stock:O-") is False


class TestLockRegistryCleanup:
    """Kilit kayıtları yalnızca kullanımdayken tutulur."""

    def test_entry_dropped_after_release(self):
        lock = RecordLock()
        with lock.hold("request:BR-1"):
            assert lock.tracked_keys() == 1
        assert lock.tracked_keys() == 0

    def test_entry_dropped_after_timeout(self):
        lock = RecordLock()
        lock.acquire("stock:A+", "admin-a")
        assert lock.acquire("stock:A+", "admin-b", timeout=0.01) is False
        assert lock.tracked_keys() == 1
        lock.release("stock:A+", "admin-a")
        assert lock.tracked_keys() == 0

    def test_handoff_to_waiter_then_cleanup(self):
        lock = RecordLock()
        lock.acquire("stock:O+", "admin-a")
        got_it = threading.Event()

        def waiter():
            with lock.hold("stock:O+"):
                got_it.set()

        t = threading.Thread(target=waiter)
        t.start()
        lock.release("stock:O+", "admin-a")
        t.join(2)
        assert got_it.is_set()
        assert lock.tracked_keys() == 0

    def test_request_churn_leaves_no_entries(self):
        record_lock = RecordLock()
        store = RequestStore(InMemoryStore(), record_lock=record_lock)
        fields = {
            "patientName": "Ali Veli", "bloodGroup": "A+", "unitsRequired": 1,
            "contactPerson": "Ali", "phoneNumber": "5551112233", "email": "ali@example.com",
        }
        for i in range(200):
            record = store.create(fields)
            store.set_status(record.request_id, "Completed")
            store.delete(record.request_id)
            with pytest.raises(NotFoundError):
                store.delete(f"BR-MISSING-{i}")

        assert store.list_all() == []
        assert record_lock.tracked_keys() == 0
