"""
In-Memory Storage Implementation

Used by the test suite and by the app's demo mode (no collaborators
configured). Behaves like the managed store: ids and timestamps are
assigned on insert, and every write pushes a fresh snapshot to the
subscribers of the affected user.
"""

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from financely.models.audit import AuditEvent
from financely.models.transaction import NewTransaction, Transaction
from financely.services.storage.interface import (
    AuditStorageInterface,
    ErrorCallback,
    SnapshotCallback,
    Subscription,
    TransactionStoreInterface,
    order_snapshot,
)
from financely.services.storage.publisher import SnapshotPublisher


class InMemoryTransactionStore(TransactionStoreInterface):
    """Transaction store backed by a dict."""

    def __init__(self, records: Optional[list[Transaction]] = None):
        self._records: dict[str, Transaction] = {
            record.id: record for record in (records or [])
        }
        self._lock = threading.Lock()
        self._publisher = SnapshotPublisher()
        self._last_created_at: Optional[datetime] = None

    def _load_snapshot(self, user_id: str) -> list[Transaction]:
        with self._lock:
            owned = [r for r in self._records.values() if r.user_id == user_id]
        return order_snapshot(owned)

    @property
    def publisher(self) -> SnapshotPublisher:
        return self._publisher

    def _next_timestamp(self) -> datetime:
        # Strictly increasing within one store
        now = datetime.now(timezone.utc)
        if self._last_created_at is not None and now <= self._last_created_at:
            now = self._last_created_at + timedelta(microseconds=1)
        self._last_created_at = now
        return now

    async def insert(self, user_id: str, transaction: NewTransaction) -> str:
        with self._lock:
            record = Transaction(
                id=uuid4().hex,
                user_id=user_id,
                created_at=self._next_timestamp(),
                **transaction.model_dump(),
            )
            self._records[record.id] = record
        self._publisher.publish(user_id, self._load_snapshot)
        return record.id

    async def delete(self, transaction_id: str) -> bool:
        with self._lock:
            record = self._records.pop(transaction_id, None)
        if record is None:
            return False
        self._publisher.publish(record.user_id, self._load_snapshot)
        return True

    def subscribe(
        self,
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        subscription = self._publisher.add(user_id, on_snapshot, on_error)
        self._publisher.publish(user_id, self._load_snapshot, only=subscription)
        return subscription

    def all_records(self) -> list[Transaction]:
        """Every stored record, regardless of owner."""
        with self._lock:
            return list(self._records.values())


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        events = sorted(self.events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
