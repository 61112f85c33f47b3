"""
Main Orchestrator for Financely

This module ties together all the components and defines the
end-to-end flows for:
1. Authentication (form → validate → auth provider → notify)
2. Transactions (form or CSV rows → validate → store → notify)

DESIGN DECISION: Flows never raise for expected failures.
Every outcome, good or bad, comes back as a Notification the UI shows
as a toast. Collaborator errors are caught here, logged and audited.
Nothing is retried automatically; the form keeps its state so the user
can simply submit again.

The store subscription, not the flow, updates the on-screen list after
a write. Flows never touch the feed's snapshot.
"""

import asyncio
import weakref
from datetime import date
from typing import NamedTuple, Optional
from uuid import UUID

import structlog
from firebase_admin import firestore

from financely.audit import AuditLogger, create_correlation_id
from financely.config import Settings, get_settings
from financely.models.audit import AuditEventType
from financely.models.feedback import Notification
from financely.models.transaction import NewTransaction
from financely.services.auth import (
    AuthError,
    AuthProviderInterface,
    FirebaseAuthProvider,
    InMemoryAuthProvider,
)
from financely.services.storage import (
    AuditStorageInterface,
    FirestoreTransactionStore,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStore,
    InMemoryAuditStorage,
    InMemoryTransactionStore,
    TransactionStoreInterface,
)
from financely.services.storage.firestore import get_firebase_app
from financely.session import AuthSession, TransactionFeed
from financely.validation import AmountInput, FormValidator


logger = structlog.get_logger(__name__)


class AuthFlow:
    """
    Orchestrates sign-up, sign-in and sign-out.

    Flow:
    1. Validate the form (no network call if it fails)
    2. Call the auth provider
    3. Audit the outcome
    4. Return a Notification

    The provider pushes the new identity to the AuthSession itself;
    this flow never sets identity directly.
    """

    def __init__(
        self,
        auth_provider: AuthProviderInterface,
        validator: Optional[FormValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._provider = auth_provider
        self._validator = validator or FormValidator()
        self._audit_logger = audit_logger or AuditLogger()

    async def _failed(self, operation: str, error: AuthError, fallback: str) -> Notification:
        if error.code == "NETWORK_ERROR":
            await self._audit_logger.log_external_service_error(
                service="firebase_auth",
                error_message=str(error),
            )
        else:
            await self._audit_logger.log_auth_failed(
                operation=operation,
                error_message=str(error),
                error_code=error.code,
            )
        return Notification.error(str(error) or fallback)

    async def sign_up(
        self,
        full_name: str,
        email: str,
        password: str,
        confirm_password: str,
    ) -> Notification:
        """Create an account and sign the new user in."""
        result = self._validator.validate_sign_up(full_name, email, password, confirm_password)
        if result.has_errors:
            await self._audit_logger.log_validation_failed(
                form=result.form,
                issues=[issue.model_dump() for issue in result.issues],
            )
            return result.to_notification()

        try:
            identity = await self._provider.sign_up(
                email.strip(),
                password,
                display_name=full_name.strip(),
            )
        except AuthError as e:
            return await self._failed("sign_up", e, "Failed to create account")

        await self._audit_logger.log_signed_up(user_id=identity.uid, email=identity.email)
        return Notification.success("Account created successfully!")

    async def sign_in(self, email: str, password: str) -> Notification:
        result = self._validator.validate_sign_in(email, password)
        if result.has_errors:
            await self._audit_logger.log_validation_failed(
                form=result.form,
                issues=[issue.model_dump() for issue in result.issues],
            )
            return result.to_notification()

        try:
            identity = await self._provider.sign_in(email.strip(), password)
        except AuthError as e:
            return await self._failed("sign_in", e, "Failed to login")

        await self._audit_logger.log_signed_in(user_id=identity.uid, method="password")
        return Notification.success("Logged in successfully!")

    async def sign_in_with_google(self, id_token: Optional[str]) -> Notification:
        """Federated sign-in with a Google ID token."""
        if not id_token:
            return Notification.error("Failed to login with Google")

        try:
            identity = await self._provider.sign_in_with_federated_identity(id_token)
        except AuthError as e:
            return await self._failed("sign_in_with_google", e, "Failed to login with Google")

        await self._audit_logger.log_signed_in(user_id=identity.uid, method="google")
        return Notification.success("Logged in with Google successfully!")

    async def sign_out(self) -> Notification:
        identity = self._provider.current_identity

        try:
            await self._provider.sign_out()
        except AuthError as e:
            return await self._failed("sign_out", e, "Failed to logout")

        await self._audit_logger.log_signed_out(user_id=identity.uid if identity else None)
        return Notification.success("Logged out successfully!")


class TransactionFlow:
    """
    Orchestrates every write to the transaction store.

    Manual entry and CSV import share _create(), so both tag records with
    the current user id and get an insertion timestamp from the store.
    """

    def __init__(
        self,
        store: TransactionStoreInterface,
        session: AuthSession,
        validator: Optional[FormValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._session = session
        self._validator = validator or FormValidator()
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def session(self) -> AuthSession:
        return self._session

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    async def _create(
        self,
        user_id: str,
        transaction: NewTransaction,
        correlation_id: UUID,
    ) -> str:
        transaction_id = await self._store.insert(user_id, transaction)
        await self._audit_logger.log_transaction_added(
            transaction_id=transaction_id,
            user_id=user_id,
            name=transaction.name,
            amount=str(transaction.amount),
            transaction_type=transaction.type.value,
            correlation_id=correlation_id,
        )
        return transaction_id

    async def add_transaction(
        self,
        name: Optional[str],
        amount: AmountInput,
        transaction_type: Optional[str],
        category: Optional[str],
        transaction_date: Optional[date],
    ) -> Notification:
        """Validate the add-transaction form and insert one record."""
        user_id = self._session.user_id
        if user_id is None:
            return Notification.error("Please sign in first")

        result, transaction = self._validator.validate_transaction(
            name, amount, transaction_type, category, transaction_date
        )
        if transaction is None:
            await self._audit_logger.log_validation_failed(
                form=result.form,
                issues=[issue.model_dump() for issue in result.issues],
                user_id=user_id,
            )
            return result.to_notification()

        correlation_id = create_correlation_id()
        try:
            await self._create(user_id, transaction, correlation_id)
        except Exception as e:
            await self._audit_logger.log_operation_failed(
                event_type=AuditEventType.SAVE_FAILED,
                error_message=str(e),
                user_id=user_id,
                correlation_id=correlation_id,
            )
            return Notification.error("Failed to add transaction")

        return Notification.success("Transaction added successfully!")

    async def delete_transaction(self, transaction_id: str) -> Notification:
        """
        Delete one record by id.

        The record disappears from the screen when the next snapshot
        arrives; nothing is removed optimistically.
        """
        user_id = self._session.user_id

        try:
            deleted = await self._store.delete(transaction_id)
        except Exception as e:
            await self._audit_logger.log_operation_failed(
                event_type=AuditEventType.DELETE_FAILED,
                error_message=str(e),
                user_id=user_id,
                entity_id=transaction_id,
            )
            return Notification.error("Failed to delete transaction")

        if not deleted:
            await self._audit_logger.log_operation_failed(
                event_type=AuditEventType.DELETE_FAILED,
                error_message="Transaction not found",
                user_id=user_id,
                entity_id=transaction_id,
            )
            return Notification.error("Failed to delete transaction")

        await self._audit_logger.log_transaction_deleted(
            transaction_id=transaction_id,
            user_id=user_id,
        )
        return Notification.success("Transaction deleted successfully!")

    async def cancel_deletion(self, transaction_id: str) -> None:
        await self._audit_logger.log_delete_cancelled(
            transaction_id=transaction_id,
            user_id=self._session.user_id,
        )

    async def import_transactions(
        self,
        transactions: list[NewTransaction],
        dropped: int = 0,
    ) -> Notification:
        """
        Insert already-parsed rows concurrently.

        The import succeeds only if every insert succeeds. There is no
        per-row retry and no partial-success report.
        """
        user_id = self._session.user_id
        if user_id is None:
            return Notification.error("Please sign in first")

        if not transactions:
            return Notification.error("No valid transactions found in CSV")

        correlation_id = create_correlation_id()
        try:
            await asyncio.gather(*(
                self._create(user_id, transaction, correlation_id)
                for transaction in transactions
            ))
        except Exception as e:
            await self._audit_logger.log_operation_failed(
                event_type=AuditEventType.IMPORT_FAILED,
                error_message=str(e),
                user_id=user_id,
                correlation_id=correlation_id,
            )
            return Notification.error("Failed to import transactions")

        await self._audit_logger.log_import_completed(
            user_id=user_id,
            imported=len(transactions),
            dropped=dropped,
            correlation_id=correlation_id,
        )
        return Notification.success(f"Imported {len(transactions)} transactions!")

    async def record_export(self, row_count: int, filename: str) -> Notification:
        await self._audit_logger.log_export_completed(
            user_id=self._session.user_id,
            row_count=row_count,
            filename=filename,
        )
        return Notification.success("Transactions exported successfully!")


class AppComponents(NamedTuple):
    """Everything one browser session needs."""
    auth_provider: AuthProviderInterface
    store: TransactionStoreInterface
    audit_logger: AuditLogger
    session: AuthSession
    feed: TransactionFeed
    auth_flow: AuthFlow
    transaction_flow: TransactionFlow


def _create_auth_provider(settings: Settings) -> AuthProviderInterface:
    if settings.app.auth_backend == "memory":
        return InMemoryAuthProvider()

    try:
        return FirebaseAuthProvider(settings.firebase)
    except Exception as e:
        # Auth not configured - continue in demo mode
        logger.warning("auth_not_configured", error=str(e))
        return InMemoryAuthProvider()


def _create_storage(
    settings: Settings,
) -> tuple[TransactionStoreInterface, AuditStorageInterface]:
    backend = settings.app.storage_backend

    try:
        if backend == "firestore":
            client = firestore.client(get_firebase_app())
            return FirestoreTransactionStore(client), InMemoryAuditStorage()
        if backend == "google_sheets":
            sheets_client = GoogleSheetsClient()
            sheets_client.connect()
            return (
                GoogleSheetsTransactionStore(sheets_client),
                GoogleSheetsAuditStorage(sheets_client),
            )
    except Exception as e:
        # Storage not configured - continue without it
        logger.warning("storage_not_configured", backend=backend, error=str(e))

    return InMemoryTransactionStore(), InMemoryAuditStorage()


def create_app_components(
    settings: Optional[Settings] = None,
    auth_provider: Optional[AuthProviderInterface] = None,
    store: Optional[TransactionStoreInterface] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Backends are chosen from AppSettings. Any collaborator that is not
    configured falls back to its in-memory adapter (demo mode).
    Explicit arguments override the settings, which is how tests wire
    in-memory adapters.

    The session and feed are started before returning.
    """
    settings = settings or get_settings()

    if auth_provider is None:
        auth_provider = _create_auth_provider(settings)

    if store is None:
        store, default_audit_storage = _create_storage(settings)
        audit_storage = audit_storage or default_audit_storage

    audit_logger = AuditLogger(audit_storage or InMemoryAuditStorage())
    validator = FormValidator(settings.app.min_password_length)

    session = AuthSession(auth_provider)
    feed = TransactionFeed(store, session)
    session.start()
    feed.start()

    return AppComponents(
        auth_provider=auth_provider,
        store=store,
        audit_logger=audit_logger,
        session=session,
        feed=feed,
        auth_flow=AuthFlow(auth_provider, validator, audit_logger),
        transaction_flow=TransactionFlow(store, session, validator, audit_logger),
    )


def shutdown_app_components(components: AppComponents) -> None:
    """Stop the live subscription and the identity listener."""
    components.feed.stop()
    components.session.stop()
    logger.info("components_stopped")


class ComponentsHandle:
    """
    Owns one browser session's components.

    Streamlit drops session_state when a browser session ends; the
    finalizer then stops the feed so its store listener does not outlive
    the session. Nothing in the components may refer back to the handle.
    """

    def __init__(self, components: AppComponents):
        self.components = components
        self._finalizer = weakref.finalize(self, shutdown_app_components, components)

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def close(self) -> None:
        """Stop the components now (runs at most once)."""
        self._finalizer()
