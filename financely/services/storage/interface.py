"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the document store.
This allows us to:
1. Use Firestore in production
2. Swap in Google Sheets without touching business logic
3. Use in-memory storage for testing and demo mode

The interface is intentionally tiny. Records are immutable, so there is
insert, delete and a live subscription - and no update.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from financely.models.audit import AuditEvent
from financely.models.transaction import NewTransaction, Transaction


SnapshotCallback = Callable[[list[Transaction]], None]
ErrorCallback = Callable[[Exception], None]


class Subscription(ABC):
    """
    Handle to a live query.

    Delivers full snapshots (never diffs) until unsubscribed.
    """

    @property
    @abstractmethod
    def active(self) -> bool:
        """True until unsubscribe() has been called."""
        pass

    @abstractmethod
    def unsubscribe(self) -> None:
        """
        Stop delivering snapshots.

        Must be idempotent - calling it twice is not an error.
        """
        pass


class TransactionStoreInterface(ABC):
    """
    Abstract interface for the transaction document store.

    Any storage implementation (Firestore, Google Sheets, memory)
    must implement these methods.
    """

    @abstractmethod
    async def insert(self, user_id: str, transaction: NewTransaction) -> str:
        """
        Insert a new transaction for a user.

        The store assigns the id and the creation timestamp.

        Args:
            user_id: Owner of the new record
            transaction: User-supplied fields

        Returns:
            The id assigned by the store

        Raises:
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def delete(self, transaction_id: str) -> bool:
        """
        Delete a transaction by id.

        Args:
            transaction_id: The store-assigned identifier

        Returns:
            True if a record was removed

        Raises:
            StorageError: If the delete fails
        """
        pass

    @abstractmethod
    def subscribe(
        self,
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """
        Subscribe to all records of one user.

        Snapshots are ordered by created_at descending. The first snapshot
        is delivered as soon as the store has it; later ones follow every
        change.

        Args:
            user_id: Whose records to watch
            on_snapshot: Called with the full record list on every change
            on_error: Called if the subscription breaks

        Returns:
            A Subscription handle
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Args:
            event: The audit event to log

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return

        Returns:
            List of recent events (newest first)
        """
        pass


def order_snapshot(records: list[Transaction]) -> list[Transaction]:
    """Default snapshot order: newest insertion first."""
    return sorted(records, key=lambda t: t.created_at, reverse=True)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
