"""
Shared fixtures.

Everything runs against the in-memory adapters; no test talks to
Firebase, Google Sheets or the network.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest
import pytest_asyncio

from financely.audit import AuditLogger
from financely.models.transaction import (
    NewTransaction,
    Transaction,
    TransactionType,
    UserIdentity,
)
from financely.orchestrator import AuthFlow, TransactionFlow
from financely.services.auth import InMemoryAuthProvider
from financely.services.storage import (
    InMemoryAuditStorage,
    InMemoryTransactionStore,
    StorageError,
)
from financely.session import AuthSession, TransactionFeed
from financely.validation import FormValidator


USER = UserIdentity(uid="user-1", email="jane@example.com", display_name="Jane Doe")
OTHER_USER = UserIdentity(uid="user-2", email="sam@example.com")

_BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_transaction(
    name: str = "Salary",
    amount: str = "100",
    transaction_type: TransactionType = TransactionType.INCOME,
    category: str = "Work",
    on: date = date(2024, 1, 5),
    user_id: str = USER.uid,
    transaction_id: Optional[str] = None,
    created_offset: int = 0,
) -> Transaction:
    """Build a stored record; created_offset orders records by insertion."""
    return Transaction(
        id=transaction_id or f"{name.lower()}-{on.isoformat()}-{amount}",
        user_id=user_id,
        name=name,
        amount=Decimal(amount),
        type=transaction_type,
        category=category,
        date=on,
        created_at=_BASE_TIME + timedelta(minutes=created_offset),
    )


def make_new_transaction(
    name: str = "Coffee",
    amount: str = "3.50",
    transaction_type: TransactionType = TransactionType.EXPENSE,
    category: str = "Food",
    on: date = date(2024, 2, 1),
) -> NewTransaction:
    return NewTransaction(
        name=name,
        amount=Decimal(amount),
        type=transaction_type,
        category=category,
        date=on,
    )


class RecordingStore(InMemoryTransactionStore):
    """In-memory store that counts calls and can be told to fail."""

    def __init__(self, records=None):
        super().__init__(records)
        self.insert_calls = 0
        self.delete_calls = 0
        self.fail_inserts_after: Optional[int] = None
        self.fail_deletes = False

    async def insert(self, user_id, transaction):
        self.insert_calls += 1
        if self.fail_inserts_after is not None and self.insert_calls > self.fail_inserts_after:
            raise StorageError("insert rejected")
        return await super().insert(user_id, transaction)

    async def delete(self, transaction_id):
        self.delete_calls += 1
        if self.fail_deletes:
            raise StorageError("delete rejected")
        return await super().delete(transaction_id)


@pytest.fixture
def scenario_records() -> list[Transaction]:
    """Income 100 in January, food expenses 40 (Jan) and 20 (Feb)."""
    return [
        make_transaction("Salary", "100", TransactionType.INCOME, "Work", date(2024, 1, 5)),
        make_transaction("Groceries", "40", TransactionType.EXPENSE, "Food", date(2024, 1, 10),
                         created_offset=1),
        make_transaction("Lunch", "20", TransactionType.EXPENSE, "Food", date(2024, 2, 1),
                         created_offset=2),
    ]


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def validator() -> FormValidator:
    return FormValidator(min_password_length=6)


@pytest.fixture
def auth_provider() -> InMemoryAuthProvider:
    return InMemoryAuthProvider()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def session(auth_provider) -> AuthSession:
    session = AuthSession(auth_provider)
    session.start()
    yield session
    session.stop()


@pytest.fixture
def feed(store, session) -> TransactionFeed:
    feed = TransactionFeed(store, session)
    feed.start()
    yield feed
    feed.stop()


@pytest.fixture
def auth_flow(auth_provider, validator, audit_logger) -> AuthFlow:
    return AuthFlow(auth_provider, validator, audit_logger)


@pytest.fixture
def transaction_flow(store, session, validator, audit_logger) -> TransactionFlow:
    return TransactionFlow(store, session, validator, audit_logger)


@pytest_asyncio.fixture
async def signed_in(auth_provider, session):
    """A registered and signed-in user (Jane)."""
    await auth_provider.sign_up("jane@example.com", "secret123", display_name="Jane Doe")
    return session.identity
