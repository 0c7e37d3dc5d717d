"""Shared fixtures for the CineJournal test suite."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest

from cinejournal.auth.base import AuthProvider, User
from cinejournal.observability.metrics import MetricsManager
from cinejournal.retention.errors import StoreQueryError

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@dataclass
class FakeEntry:
    """Minimal trending entry as seen by the retention manager."""
    id: UUID
    created_at: datetime
    is_active: bool = True
    expires_at: Optional[datetime] = None
    title: str = "Untitled"


@dataclass
class FakeTrendingStore:
    """In-memory record store implementing the retention store contract.

    Attributes:
        fail_on_delete: Entry ids whose delete or deactivate raises
        vanish_on_delete: Entry ids removed by "another run" right before
            this store's delete is called
        query_error: Raised by every candidate query when set
    """
    entries: Dict[UUID, FakeEntry] = field(default_factory=dict)
    fail_on_delete: Set[UUID] = field(default_factory=set)
    vanish_on_delete: Set[UUID] = field(default_factory=set)
    query_error: Optional[Exception] = None
    delete_calls: List[UUID] = field(default_factory=list)

    def add(
        self,
        age: timedelta,
        now: datetime = NOW,
        is_active: bool = True,
        expires_at: Optional[datetime] = None,
        title: str = "Untitled",
    ) -> FakeEntry:
        entry = FakeEntry(
            id=uuid4(),
            created_at=now - age,
            is_active=is_active,
            expires_at=expires_at,
            title=title,
        )
        self.entries[entry.id] = entry
        return entry

    def _check_query(self, operation: str) -> None:
        if self.query_error is not None:
            raise self.query_error

    async def find_created_before(self, cutoff: datetime, limit: int) -> List[FakeEntry]:
        self._check_query("find_created_before")
        found = sorted(
            (e for e in self.entries.values() if e.created_at < cutoff),
            key=lambda e: e.created_at,
        )
        return found[:limit]

    async def find_created_between(
        self, start: datetime, end: datetime, limit: int
    ) -> List[FakeEntry]:
        self._check_query("find_created_between")
        found = sorted(
            (e for e in self.entries.values() if start <= e.created_at < end),
            key=lambda e: e.created_at,
        )
        return found[:limit]

    async def find_inactive(self, limit: int) -> List[FakeEntry]:
        self._check_query("find_inactive")
        return [e for e in self.entries.values() if not e.is_active][:limit]

    async def find_expired_active(self, now: datetime, limit: int) -> List[FakeEntry]:
        self._check_query("find_expired_active")
        return [
            e for e in self.entries.values()
            if e.is_active and e.expires_at is not None and e.expires_at < now
        ][:limit]

    async def get_by_id(self, entry_id: UUID) -> Optional[FakeEntry]:
        return self.entries.get(entry_id)

    async def delete(self, entry_id: UUID) -> bool:
        self.delete_calls.append(entry_id)
        if entry_id in self.fail_on_delete:
            raise RuntimeError(f"connection reset while deleting {entry_id}")
        if entry_id in self.vanish_on_delete:
            self.entries.pop(entry_id, None)
        return self.entries.pop(entry_id, None) is not None

    async def deactivate(self, entry_id: UUID) -> bool:
        if entry_id in self.fail_on_delete:
            raise RuntimeError(f"connection reset while updating {entry_id}")
        entry = self.entries.get(entry_id)
        if entry is None or not entry.is_active:
            return False
        entry.is_active = False
        return True

    async def update_expiration(self, entry_id: UUID, expires_at: datetime) -> Optional[FakeEntry]:
        entry = self.entries.get(entry_id)
        if entry is None:
            return None
        entry.expires_at = expires_at
        return entry


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def now():
    """Fixed current time used by the retention clock."""
    return NOW


@pytest.fixture
def store():
    """Empty in-memory trending store."""
    return FakeTrendingStore()


@pytest.fixture
def failing_store():
    """Store whose candidate queries fail."""
    return FakeTrendingStore(query_error=StoreQueryError("find_created_before", "connection refused"))


@pytest.fixture
def metrics():
    """Metrics manager mock so tests can assert on recorded sweeps."""
    return MagicMock(spec=MetricsManager)


@pytest.fixture
def service_user():
    """Authenticated service caller."""
    return User(
        id=uuid4(),
        username="ingestion-job",
        roles=["service"],
        auth_provider=AuthProvider.API_KEY,
        is_service_account=True,
    )


@pytest.fixture
def regular_user():
    """Authenticated end user."""
    return User(
        id=uuid4(),
        email="viewer@example.com",
        username="viewer",
        roles=["user"],
        auth_provider=AuthProvider.JWT,
    )
