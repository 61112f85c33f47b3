"""
Firestore Storage Implementation

The production backend. Firestore is the managed, real-time document
store: inserts get a server-assigned id and timestamp, and a query
listener pushes the full result set whenever it changes.

Document layout in the transactions collection:
    userId     string   owner's uid (every query filters on it)
    name       string
    amount     number
    type       string   "income" | "expense"
    category   string
    date       string   ISO 8601 calendar date
    createdAt  timestamp (server-assigned)

The Admin SDK is synchronous; blocking calls run in a worker thread so
concurrent inserts (bulk import) really overlap.
"""

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

import firebase_admin
import structlog
from firebase_admin import credentials, firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from financely.config import get_settings
from financely.models.transaction import (
    NewTransaction,
    Transaction,
    TransactionType,
)
from financely.services.storage.interface import (
    ConnectionError,
    ErrorCallback,
    SnapshotCallback,
    StorageError,
    Subscription,
    TransactionStoreInterface,
)


logger = structlog.get_logger(__name__)


def get_firebase_app() -> firebase_admin.App:
    """Initialize the default Firebase app once per process."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    settings = get_settings().firebase
    try:
        cred = credentials.Certificate(settings.credentials_path)
    except (FileNotFoundError, ValueError) as e:
        raise ConnectionError(f"Invalid Firebase credentials: {e}")

    options = {"projectId": settings.project_id} if settings.project_id else None
    return firebase_admin.initialize_app(cred, options)


def transaction_to_document(
    user_id: str,
    transaction: NewTransaction,
) -> dict[str, Any]:
    """Fields written on insert."""
    return {
        "userId": user_id,
        "name": transaction.name,
        "amount": float(transaction.amount),
        "type": transaction.type.value,
        "category": transaction.category,
        "date": transaction.date.isoformat(),
        "createdAt": firestore.SERVER_TIMESTAMP,
    }


def document_to_transaction(doc_id: str, data: dict[str, Any]) -> Transaction:
    """Build a Transaction from a Firestore document."""
    created_at = data.get("createdAt")
    if created_at is None:
        # Server timestamp not resolved yet
        created_at = datetime.now(timezone.utc)

    return Transaction(
        id=doc_id,
        user_id=data["userId"],
        name=data["name"],
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        amount=Decimal(str(data["amount"])),
        type=TransactionType(data["type"]),
        category=data["category"],
        date=date.fromisoformat(data["date"]),
        created_at=created_at,
    )


class FirestoreSubscription(Subscription):
    """Wraps a Firestore Watch."""

    def __init__(self, watch):
        self._watch = watch
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._watch.unsubscribe()


class FirestoreTransactionStore(TransactionStoreInterface):
    """Firestore implementation of the transaction store."""

    def __init__(
        self,
        client: Optional[firestore.Client] = None,
        collection: Optional[str] = None,
    ):
        self._client = client
        self._collection_name = (
            collection or get_settings().firebase.transactions_collection
        )

    def _db(self) -> firestore.Client:
        if self._client is None:
            self._client = firestore.client(get_firebase_app())
        return self._client

    def _collection(self):
        return self._db().collection(self._collection_name)

    async def insert(self, user_id: str, transaction: NewTransaction) -> str:
        fields = transaction_to_document(user_id, transaction)
        try:
            _, doc_ref = await asyncio.to_thread(self._collection().add, fields)
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")
        return doc_ref.id

    async def delete(self, transaction_id: str) -> bool:
        try:
            await asyncio.to_thread(
                self._collection().document(transaction_id).delete
            )
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")
        return True

    def subscribe(
        self,
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        query = (
            self._collection()
            .where(filter=FieldFilter("userId", "==", user_id))
            .order_by("createdAt", direction=firestore.Query.DESCENDING)
        )

        def handle_snapshot(docs, changes, read_time):
            records = []
            for doc in docs:
                try:
                    records.append(document_to_transaction(doc.id, doc.to_dict()))
                except Exception as e:
                    logger.warning(
                        "skipping_malformed_document",
                        user_id=user_id,
                        doc_id=doc.id,
                        error=str(e),
                    )
            on_snapshot(records)

        try:
            watch = query.on_snapshot(handle_snapshot)
        except Exception as e:
            raise StorageError(f"Failed to subscribe to transactions: {e}")
        return FirestoreSubscription(watch)
