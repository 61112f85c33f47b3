"""
Storage Services Package

Provides the abstract document-store interface and its implementations.
Firestore is the production backend; Google Sheets and memory are swappable.
"""

from financely.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    StorageError,
    Subscription,
    TransactionStoreInterface,
    order_snapshot,
)
from financely.services.storage.publisher import SnapshotPublisher
from financely.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryTransactionStore,
)
from financely.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
)
from financely.services.storage.firestore import FirestoreTransactionStore

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "Subscription",
    "TransactionStoreInterface",
    "order_snapshot",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # Implementations
    "FirestoreTransactionStore",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
    "InMemoryAuditStorage",
    "InMemoryTransactionStore",
    "SnapshotPublisher",
]
