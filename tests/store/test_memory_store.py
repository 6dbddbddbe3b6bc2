"""Tests for the in-memory lock store."""

import threading
from datetime import UTC, datetime, timedelta

import pytest

from mongolock.store.base import PriorState
from mongolock.store.memory_store import InMemoryLockStore, UniqueConstraintViolation

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class TestInMemoryLockStore:
    """Test cases for InMemoryLockStore."""

    def test_create_when_absent(self) -> None:
        """Test the first create reports that no record existed."""
        store = InMemoryLockStore()

        prior = store.conditional_create_or_report("lock_a", NOW)

        assert prior is PriorState.DID_NOT_EXIST
        record = store.get("lock_a")
        assert record is not None
        assert record.expire_at == NOW

    def test_create_when_present_keeps_original(self) -> None:
        """Test a second create reports existence and does not overwrite."""
        store = InMemoryLockStore()
        store.conditional_create_or_report("lock_a", NOW)

        prior = store.conditional_create_or_report("lock_a", NOW + timedelta(hours=1))

        assert prior is PriorState.ALREADY_EXISTED
        record = store.get("lock_a")
        assert record is not None
        assert record.expire_at == NOW

    def test_delete_if_exists_is_idempotent(self) -> None:
        """Test deleting twice, or deleting a missing id, does not raise."""
        store = InMemoryLockStore()
        store.conditional_create_or_report("lock_a", NOW)

        store.delete_if_exists("lock_a")
        store.delete_if_exists("lock_a")
        store.delete_if_exists("lock_missing")

        assert "lock_a" not in store
        assert len(store) == 0

    def test_armed_race_raises_violation_and_stores_competitor(self) -> None:
        """Test the simulated race leaves the competitor's record behind."""
        store = InMemoryLockStore()
        store.arm_insert_race("lock_a")

        with pytest.raises(UniqueConstraintViolation) as exc_info:
            store.conditional_create_or_report("lock_a", NOW)

        assert exc_info.value.lock_id == "lock_a"
        assert store.is_contention_error(exc_info.value) is True
        assert "lock_a" in store

    def test_armed_race_fires_once(self) -> None:
        """Test the race only affects the next create of that id."""
        store = InMemoryLockStore()
        store.arm_insert_race("lock_a")
        with pytest.raises(UniqueConstraintViolation):
            store.conditional_create_or_report("lock_a", NOW)
        store.delete_if_exists("lock_a")

        assert store.conditional_create_or_report("lock_a", NOW) is PriorState.DID_NOT_EXIST

    def test_armed_race_not_triggered_when_record_exists(self) -> None:
        """Test an existing record is reported normally even with a race armed."""
        store = InMemoryLockStore()
        store.conditional_create_or_report("lock_a", NOW)
        store.arm_insert_race("lock_a")

        assert store.conditional_create_or_report("lock_a", NOW) is PriorState.ALREADY_EXISTED

    def test_other_errors_are_not_contention(self) -> None:
        """Test the contention predicate is narrow."""
        store = InMemoryLockStore()

        assert store.is_contention_error(ConnectionError("down")) is False
        assert store.is_contention_error(KeyError("lock_a")) is False

    def test_fail_next_raises_once(self) -> None:
        """Test injected failures affect exactly one operation."""
        store = InMemoryLockStore()
        store.fail_next(TimeoutError("slow"))

        with pytest.raises(TimeoutError):
            store.conditional_create_or_report("lock_a", NOW)

        assert store.conditional_create_or_report("lock_a", NOW) is PriorState.DID_NOT_EXIST

    def test_sweep_removes_only_expired(self) -> None:
        """Test the expiry sweep honours each record's expiry time."""
        clock_now = {"value": NOW}
        store = InMemoryLockStore(clock=lambda: clock_now["value"])
        store.conditional_create_or_report("lock_short", NOW + timedelta(seconds=1))
        store.conditional_create_or_report("lock_long", NOW + timedelta(minutes=5))

        assert store.sweep() == 0

        clock_now["value"] = NOW + timedelta(seconds=1)
        assert store.sweep() == 1
        assert "lock_short" not in store
        assert "lock_long" in store

    def test_records_are_not_expired_on_read(self) -> None:
        """Test an expired record still blocks creation until a sweep runs."""
        clock_now = {"value": NOW}
        store = InMemoryLockStore(clock=lambda: clock_now["value"])
        store.conditional_create_or_report("lock_a", NOW)
        clock_now["value"] = NOW + timedelta(hours=1)

        assert store.conditional_create_or_report("lock_a", NOW) is PriorState.ALREADY_EXISTED

    def test_ensure_expiry_index(self) -> None:
        """Test the bootstrap hook is recorded."""
        store = InMemoryLockStore()
        assert store.expiry_index_created is False

        store.ensure_expiry_index()

        assert store.expiry_index_created is True

    def test_concurrent_creates_have_single_winner(self) -> None:
        """Test only one of many simultaneous creates reports DID_NOT_EXIST."""
        store = InMemoryLockStore()
        barrier = threading.Barrier(16)
        results: list[PriorState] = []
        results_guard = threading.Lock()

        def create() -> None:
            barrier.wait()
            prior = store.conditional_create_or_report("lock_a", NOW)
            with results_guard:
                results.append(prior)

        threads = [threading.Thread(target=create) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert results.count(PriorState.DID_NOT_EXIST) == 1
        assert results.count(PriorState.ALREADY_EXISTED) == 15
