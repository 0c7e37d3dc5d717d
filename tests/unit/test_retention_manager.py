"""Unit tests for the trending retention manager.

Runs every pass against the in-memory store from conftest with a fixed clock.
"""

import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest

from cinejournal.config import RetentionSettings
from cinejournal.retention.errors import EntryNotFoundError, StoreQueryError
from cinejournal.retention.manager import (
    DEFAULT_BATCH_LIMIT,
    DEFAULT_RETENTION_WINDOW,
    RetentionRunResult,
    SweepFailure,
    SweepResult,
    TrendingRetentionManager,
)

# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def manager(store, now, metrics):
    """Manager with the default 36 hour window and a fixed clock."""
    return TrendingRetentionManager(store, clock=lambda: now, metrics=metrics)


# ============================================================================
# Construction Tests
# ============================================================================

@pytest.mark.unit
class TestManagerConstruction:
    """Tests for manager configuration."""

    def test_defaults(self, store, metrics):
        manager = TrendingRetentionManager(store, metrics=metrics)

        assert manager.window == DEFAULT_RETENTION_WINDOW == timedelta(hours=36)
        assert manager.batch_limit == DEFAULT_BATCH_LIMIT == 1000

    def test_defaults_follow_settings_defaults(self, store, metrics):
        fields = RetentionSettings.model_fields
        manager = TrendingRetentionManager(store, metrics=metrics)

        assert manager.window == timedelta(hours=fields["window_hours"].default)
        assert manager.batch_limit == fields["batch_limit"].default

    def test_from_settings(self, store, metrics):
        settings = RetentionSettings(window_hours=24, batch_limit=50)

        manager = TrendingRetentionManager.from_settings(store, settings, metrics=metrics)

        assert manager.window == timedelta(hours=24)
        assert manager.batch_limit == 50

    @pytest.mark.parametrize("window", [timedelta(0), timedelta(hours=-1)])
    def test_rejects_non_positive_window(self, store, window):
        with pytest.raises(ValueError, match="window"):
            TrendingRetentionManager(store, window=window)

    def test_rejects_zero_batch_limit(self, store):
        with pytest.raises(ValueError, match="Batch limit"):
            TrendingRetentionManager(store, batch_limit=0)

    def test_cutoff_is_now_minus_window(self, manager, now):
        assert manager.cutoff() == now - timedelta(hours=36)


# ============================================================================
# Expired Sweep Tests
# ============================================================================

@pytest.mark.unit
class TestSweepExpired:
    """Tests for the creation-time sweep."""

    @pytest.mark.asyncio
    async def test_deletes_only_entries_older_than_window(self, manager, store, now):
        old = store.add(timedelta(hours=40))
        recent = store.add(timedelta(hours=10))

        result = await manager.sweep_expired()

        assert result.sweep == "expired"
        assert result.total_found == 1
        assert result.deleted_count == 1
        assert result.cutoff == now - timedelta(hours=36)
        assert old.id not in store.entries
        assert recent.id in store.entries

    @pytest.mark.asyncio
    async def test_entry_exactly_at_cutoff_is_kept(self, manager, store):
        boundary = store.add(timedelta(hours=36))

        result = await manager.sweep_expired()

        assert result.total_found == 0
        assert boundary.id in store.entries

    @pytest.mark.asyncio
    async def test_ignores_active_flag(self, manager, store):
        store.add(timedelta(hours=48), is_active=True)
        store.add(timedelta(hours=48), is_active=False)

        result = await manager.sweep_expired()

        assert result.deleted_count == 2
        assert store.entries == {}

    @pytest.mark.asyncio
    async def test_ignores_expires_at(self, manager, store, now):
        # extended far into the future, still too old
        entry = store.add(timedelta(hours=40), expires_at=now + timedelta(days=30))

        await manager.sweep_expired()

        assert entry.id not in store.entries

    @pytest.mark.asyncio
    async def test_second_run_is_idempotent(self, manager, store):
        store.add(timedelta(hours=50))
        store.add(timedelta(hours=60))

        first = await manager.sweep_expired()
        second = await manager.sweep_expired()

        assert first.deleted_count == 2
        assert second.deleted_count == 0
        assert second.total_found == 0
        assert second.failures == []

    @pytest.mark.asyncio
    async def test_per_record_failure_does_not_abort(self, manager, store):
        broken = store.add(timedelta(hours=50))
        healthy = store.add(timedelta(hours=45))
        store.fail_on_delete.add(broken.id)

        result = await manager.sweep_expired()

        assert result.total_found == 2
        assert result.deleted_count == 1
        assert result.failed_count == 1
        assert result.failures[0].entry_id == str(broken.id)
        assert "connection reset" in result.failures[0].error
        assert healthy.id not in store.entries
        assert broken.id in store.entries

    @pytest.mark.asyncio
    async def test_already_deleted_counts_as_success(self, manager, store):
        raced = store.add(timedelta(hours=50))
        store.vanish_on_delete.add(raced.id)

        result = await manager.sweep_expired()

        assert result.deleted_count == 0
        assert result.already_removed == 1
        assert result.failed_count == 0

    @pytest.mark.asyncio
    async def test_batch_limit_caps_candidates(self, store, now, metrics):
        for hours in range(40, 45):
            store.add(timedelta(hours=hours))
        manager = TrendingRetentionManager(store, batch_limit=3, clock=lambda: now, metrics=metrics)

        result = await manager.sweep_expired()

        assert result.total_found == 3
        assert result.deleted_count == 3
        assert len(store.entries) == 2

    @pytest.mark.asyncio
    async def test_oldest_entries_go_first_under_batch_limit(self, store, now, metrics):
        oldest = store.add(timedelta(hours=90))
        store.add(timedelta(hours=40))
        manager = TrendingRetentionManager(store, batch_limit=1, clock=lambda: now, metrics=metrics)

        await manager.sweep_expired()

        assert oldest.id not in store.entries

    @pytest.mark.asyncio
    async def test_query_failure_propagates(self, failing_store, now, metrics):
        manager = TrendingRetentionManager(failing_store, clock=lambda: now, metrics=metrics)

        with pytest.raises(StoreQueryError):
            await manager.sweep_expired()

        metrics.record_sweep_error.assert_called_once_with("expired")
        metrics.record_sweep.assert_not_called()

    @pytest.mark.asyncio
    async def test_unexpected_query_error_is_wrapped(self, store, now, metrics):
        store.query_error = ConnectionError("store unreachable")
        manager = TrendingRetentionManager(store, clock=lambda: now, metrics=metrics)

        with pytest.raises(StoreQueryError) as exc_info:
            await manager.sweep_expired()

        assert exc_info.value.operation == "expired"
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_records_metrics(self, manager, store, metrics):
        store.add(timedelta(hours=50))

        await manager.sweep_expired()

        metrics.record_sweep.assert_called_once()
        kwargs = metrics.record_sweep.call_args.kwargs
        assert kwargs["sweep"] == "expired"
        assert kwargs["deleted"] == 1
        assert kwargs["failed"] == 0


# ============================================================================
# Inactive Sweep Tests
# ============================================================================

@pytest.mark.unit
class TestSweepInactive:
    """Tests for the inactive-flag sweep."""

    @pytest.mark.asyncio
    async def test_deletes_inactive_regardless_of_age(self, manager, store):
        active = store.add(timedelta(hours=5), is_active=True)
        inactive = store.add(timedelta(hours=5), is_active=False)

        inactive_result = await manager.sweep_inactive()
        expired_result = await manager.sweep_expired()

        assert inactive_result.sweep == "inactive"
        assert inactive_result.deleted_count == 1
        assert inactive_result.cutoff is None
        assert expired_result.deleted_count == 0
        assert active.id in store.entries
        assert inactive.id not in store.entries

    @pytest.mark.asyncio
    async def test_failure_is_reported(self, manager, store):
        broken = store.add(timedelta(hours=1), is_active=False)
        store.fail_on_delete.add(broken.id)

        result = await manager.sweep_inactive()

        assert result.failed_count == 1
        assert result.deleted_count == 0


# ============================================================================
# Full Run Tests
# ============================================================================

@pytest.mark.unit
class TestRunFullSweep:
    """Tests for the combined expired and inactive run."""

    @pytest.mark.asyncio
    async def test_leaves_only_fresh_active_entry(self, manager, store):
        a = store.add(timedelta(hours=40), title="A")
        b = store.add(timedelta(hours=1), title="B")
        c = store.add(timedelta(hours=2), is_active=False, title="C")

        run = await manager.run_full_sweep()

        assert list(store.entries) == [b.id]
        assert a.id not in store.entries
        assert c.id not in store.entries
        assert run.total_deleted == 2
        assert run.expired.deleted_count == 1
        assert run.inactive.deleted_count == 1

    @pytest.mark.asyncio
    async def test_old_inactive_entry_is_not_double_counted(self, manager, store):
        # matches both predicates; the expired pass removes it first
        store.add(timedelta(hours=50), is_active=False)

        run = await manager.run_full_sweep()

        assert run.expired.deleted_count == 1
        assert run.inactive.total_found == 0
        assert run.total_deleted == 1
        assert run.total_failed == 0

    @pytest.mark.asyncio
    async def test_to_dict(self, manager, store):
        store.add(timedelta(hours=50))

        run = await manager.run_full_sweep()
        data = run.to_dict()

        assert data["total_deleted"] == 1
        assert data["expired"]["sweep"] == "expired"
        assert data["expired"]["cutoff"] is not None
        assert data["inactive"]["cutoff"] is None

    @pytest.mark.asyncio
    async def test_concurrent_runs_never_fail_on_overlap(self, store, now, metrics):
        for hours in (40, 41, 42):
            store.add(timedelta(hours=hours))
        first = TrendingRetentionManager(store, clock=lambda: now, metrics=metrics)
        second = TrendingRetentionManager(store, clock=lambda: now, metrics=metrics)

        results = await asyncio.gather(first.sweep_expired(), second.sweep_expired())

        assert sum(r.deleted_count for r in results) == 3
        assert sum(r.failed_count for r in results) == 0
        assert store.entries == {}


# ============================================================================
# Deactivation Tests
# ============================================================================

@pytest.mark.unit
class TestDeactivateExpired:
    """Tests for the soft cleanup pass."""

    @pytest.mark.asyncio
    async def test_marks_past_expiration_inactive(self, manager, store, now):
        expired = store.add(timedelta(hours=3), expires_at=now - timedelta(minutes=1))
        current = store.add(timedelta(hours=3), expires_at=now + timedelta(hours=1))
        no_expiry = store.add(timedelta(hours=3))

        result = await manager.deactivate_expired()

        assert result.sweep == "deactivate"
        assert result.deleted_count == 1
        assert store.entries[expired.id].is_active is False
        assert store.entries[current.id].is_active is True
        assert store.entries[no_expiry.id].is_active is True

    @pytest.mark.asyncio
    async def test_deletes_nothing(self, manager, store, now):
        store.add(timedelta(hours=3), expires_at=now - timedelta(hours=1))

        await manager.deactivate_expired()

        assert len(store.entries) == 1
        assert store.delete_calls == []

    @pytest.mark.asyncio
    async def test_deactivated_entries_are_removed_by_inactive_sweep(self, manager, store, now):
        entry = store.add(timedelta(hours=3), expires_at=now - timedelta(hours=1))

        await manager.deactivate_expired()
        result = await manager.sweep_inactive()

        assert result.deleted_count == 1
        assert entry.id not in store.entries

    @pytest.mark.asyncio
    async def test_failure_is_counted(self, manager, store, now):
        entry = store.add(timedelta(hours=3), expires_at=now - timedelta(hours=1))
        store.fail_on_delete.add(entry.id)

        result = await manager.deactivate_expired()

        assert result.deleted_count == 0
        assert result.failed_count == 1


# ============================================================================
# Extend Retention Tests
# ============================================================================

@pytest.mark.unit
class TestExtendRetention:
    """Tests for extending an entry's expires_at."""

    @pytest.mark.asyncio
    async def test_adds_to_existing_expiration(self, manager, store, now):
        entry = store.add(timedelta(hours=1), expires_at=now + timedelta(hours=2))

        updated = await manager.extend_retention(entry.id, timedelta(hours=24))

        assert updated.expires_at == now + timedelta(hours=26)

    @pytest.mark.asyncio
    async def test_starts_from_now_without_expiration(self, manager, store, now):
        entry = store.add(timedelta(hours=1))

        updated = await manager.extend_retention(entry.id, timedelta(hours=6))

        assert updated.expires_at == now + timedelta(hours=6)

    @pytest.mark.asyncio
    async def test_does_not_postpone_expired_sweep(self, manager, store):
        entry = store.add(timedelta(hours=40))

        await manager.extend_retention(entry.id, timedelta(days=7))
        await manager.sweep_expired()

        assert entry.id not in store.entries

    @pytest.mark.asyncio
    async def test_missing_entry_raises_not_found(self, manager, store):
        other = store.add(timedelta(hours=1))
        missing_id = uuid4()

        with pytest.raises(EntryNotFoundError) as exc_info:
            await manager.extend_retention(missing_id, timedelta(hours=1))

        assert exc_info.value.entry_id == missing_id
        assert store.entries[other.id].expires_at is None

    @pytest.mark.asyncio
    async def test_rejects_non_positive_duration(self, manager, store):
        entry = store.add(timedelta(hours=1))

        with pytest.raises(ValueError):
            await manager.extend_retention(entry.id, timedelta(0))


# ============================================================================
# Expiring Soon Tests
# ============================================================================

@pytest.mark.unit
class TestFindExpiringSoon:
    """Tests for the read-only lookahead query."""

    @pytest.mark.asyncio
    async def test_returns_entries_crossing_window_within_lookahead(self, manager, store):
        soon = store.add(timedelta(hours=35))
        later = store.add(timedelta(hours=20))
        already_expired = store.add(timedelta(hours=40))

        found = await manager.find_expiring_soon(timedelta(hours=2))

        assert [e.id for e in found] == [soon.id]
        assert later.id in store.entries
        assert already_expired.id in store.entries

    @pytest.mark.asyncio
    async def test_is_read_only(self, manager, store):
        store.add(timedelta(hours=35))

        await manager.find_expiring_soon(timedelta(hours=2))

        assert store.delete_calls == []
        assert len(store.entries) == 1

    @pytest.mark.asyncio
    async def test_rejects_non_positive_lookahead(self, manager):
        with pytest.raises(ValueError):
            await manager.find_expiring_soon(timedelta(0))


# ============================================================================
# Result Type Tests
# ============================================================================

@pytest.mark.unit
class TestResultTypes:
    """Tests for result serialization."""

    def test_sweep_result_to_dict(self):
        result = SweepResult(
            sweep="inactive",
            total_found=3,
            deleted_count=1,
            already_removed=1,
            failures=[SweepFailure(entry_id="abc", error="boom")],
        )

        data = result.to_dict()

        assert data["failed_count"] == 1
        assert data["failures"] == [{"entry_id": "abc", "error": "boom"}]
        assert data["cutoff"] is None

    def test_run_result_totals(self):
        run = RetentionRunResult(
            expired=SweepResult(sweep="expired", deleted_count=2),
            inactive=SweepResult(
                sweep="inactive",
                deleted_count=3,
                failures=[SweepFailure(entry_id="x", error="y")],
            ),
        )

        assert run.total_deleted == 5
        assert run.total_failed == 1
