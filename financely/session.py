"""
Session State and Live Transaction Feed

DESIGN DECISION: Identity is held by an explicit AuthSession object that
flows and feeds receive as a constructor argument. Nothing reads identity
from module globals, so a test can run two sessions side by side.

The TransactionFeed owns the one live subscription of a session:
- opened when a user becomes authenticated
- torn down when the user changes or signs out
- every delivery replaces the snapshot wholesale (no diffs)

Store callbacks may arrive on a background thread (Firestore watch),
so the snapshot is guarded by a lock.
"""

import threading
from typing import Callable, Optional

import structlog

from financely.aggregation import summarize
from financely.models.feedback import Notification
from financely.models.transaction import DashboardSummary, Transaction, UserIdentity
from financely.services.auth import AuthProviderInterface
from financely.services.storage import (
    StorageError,
    Subscription,
    TransactionStoreInterface,
)


logger = structlog.get_logger(__name__)

IdentityListener = Callable[[Optional[UserIdentity]], None]


class AuthSession:
    """
    Current identity plus the "still loading" flag.

    loading stays True until the provider has reported an identity state
    for the first time. Protected pages render nothing while it is True.
    """

    def __init__(self, auth_provider: AuthProviderInterface):
        self._provider = auth_provider
        self._identity: Optional[UserIdentity] = None
        self._loading = True
        self._listeners: list[IdentityListener] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def provider(self) -> AuthProviderInterface:
        return self._provider

    @property
    def identity(self) -> Optional[UserIdentity]:
        return self._identity

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    @property
    def user_id(self) -> Optional[str]:
        return self._identity.uid if self._identity else None

    @property
    def started(self) -> bool:
        return self._unsubscribe is not None

    def start(self) -> None:
        """Begin listening to the provider. Safe to call more than once."""
        if self._unsubscribe is None:
            self._unsubscribe = self._provider.on_identity_changed(self._on_identity_changed)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def add_listener(self, listener: IdentityListener) -> Callable[[], None]:
        """
        Register for identity changes.

        The listener is called immediately with the current identity
        (unless the session is still loading).
        """
        self._listeners.append(listener)
        if not self._loading:
            listener(self._identity)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _on_identity_changed(self, identity: Optional[UserIdentity]) -> None:
        self._identity = identity
        self._loading = False
        logger.info(
            "identity_changed",
            user_id=identity.uid if identity else None,
        )
        for listener in list(self._listeners):
            listener(identity)


class TransactionFeed:
    """
    The signed-in user's records, kept current by the store subscription.

    The snapshot is written only by the subscription callback.
    """

    def __init__(self, store: TransactionStoreInterface, session: AuthSession):
        self._store = store
        self._session = session
        self._lock = threading.Lock()
        self._records: list[Transaction] = []
        self._subscription: Optional[Subscription] = None
        self._subscribed_uid: Optional[str] = None
        self._remove_listener: Optional[Callable[[], None]] = None
        self._notifications: list[Notification] = []
        self._version = 0

    @property
    def subscription(self) -> Optional[Subscription]:
        return self._subscription

    @property
    def transactions(self) -> list[Transaction]:
        with self._lock:
            return list(self._records)

    @property
    def version(self) -> int:
        """Incremented on every snapshot delivery."""
        with self._lock:
            return self._version

    def summary(self) -> DashboardSummary:
        return summarize(self.transactions)

    def start(self) -> None:
        if self._remove_listener is None:
            self._remove_listener = self._session.add_listener(self._on_identity_changed)

    def stop(self) -> None:
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        self._teardown()

    def drain_notifications(self) -> list[Notification]:
        """Pending subscription errors, cleared once read."""
        with self._lock:
            pending, self._notifications = self._notifications, []
        return pending

    def _teardown(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            logger.info("subscription_stopped", user_id=self._subscribed_uid)
        self._subscription = None
        self._subscribed_uid = None
        with self._lock:
            self._records = []
            self._version += 1

    def _on_identity_changed(self, identity: Optional[UserIdentity]) -> None:
        uid = identity.uid if identity else None
        if uid == self._subscribed_uid and self._subscription is not None:
            return

        self._teardown()
        if uid is None:
            return

        self._subscribed_uid = uid
        try:
            self._subscription = self._store.subscribe(
                uid,
                lambda records, owner=uid: self._on_snapshot(owner, records),
                lambda error, owner=uid: self._on_error(owner, error),
            )
        except StorageError as e:
            self._on_error(uid, e)
            return
        logger.info("subscription_started", user_id=uid)

    def _on_snapshot(self, owner: str, records: list[Transaction]) -> None:
        with self._lock:
            # A late delivery for a previous user must not leak into this session
            if owner != self._subscribed_uid:
                return
            self._records = list(records)
            self._version += 1

    def _on_error(self, owner: str, error: Exception) -> None:
        logger.error("subscription_error", user_id=owner, error=str(error))
        with self._lock:
            if owner != self._subscribed_uid:
                return
            self._notifications.append(
                Notification.error("Lost connection to your transactions")
            )
