"""Services package."""

from financely.services.auth import (
    AuthConfigurationError,
    AuthError,
    AuthProviderInterface,
    FirebaseAuthProvider,
    InMemoryAuthProvider,
)
from financely.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    FirestoreTransactionStore,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    InMemoryAuditStorage,
    InMemoryTransactionStore,
    StorageError,
    Subscription,
    TransactionStoreInterface,
)

__all__ = [
    # Auth services
    "AuthConfigurationError",
    "AuthError",
    "AuthProviderInterface",
    "FirebaseAuthProvider",
    "InMemoryAuthProvider",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "FirestoreTransactionStore",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStore",
    "InMemoryAuditStorage",
    "InMemoryTransactionStore",
    "StorageError",
    "Subscription",
    "TransactionStoreInterface",
]
