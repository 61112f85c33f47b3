"""
Snapshot Publisher

Backends without native push (Google Sheets, memory) still have to honour
the live-subscription contract. They do it by re-reading the user's
records after each of their own writes and handing the full snapshot to
every subscriber of that user.
"""

import threading
from typing import Callable, Optional

import structlog

from financely.models.transaction import Transaction
from financely.services.storage.interface import (
    ErrorCallback,
    SnapshotCallback,
    Subscription,
)


logger = structlog.get_logger(__name__)


class LocalSubscription(Subscription):
    """Subscription registered with a SnapshotPublisher."""

    def __init__(
        self,
        publisher: "SnapshotPublisher",
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback],
    ):
        self._publisher = publisher
        self.user_id = user_id
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._publisher.remove(self)


class SnapshotPublisher:
    """Fan-out of full snapshots to the subscribers of each user."""

    def __init__(self):
        self._subscriptions: list[LocalSubscription] = []
        self._lock = threading.Lock()

    def add(
        self,
        user_id: str,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> LocalSubscription:
        subscription = LocalSubscription(self, user_id, on_snapshot, on_error)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def remove(self, subscription: LocalSubscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def subscriber_count(self, user_id: Optional[str] = None) -> int:
        with self._lock:
            if user_id is None:
                return len(self._subscriptions)
            return sum(1 for s in self._subscriptions if s.user_id == user_id)

    def publish(
        self,
        user_id: str,
        load_snapshot: Callable[[str], list[Transaction]],
        only: Optional[LocalSubscription] = None,
    ) -> None:
        """
        Load the user's snapshot and deliver it.

        A failing load is reported to each subscriber's on_error instead of
        propagating into the write that triggered it.
        """
        with self._lock:
            targets = [
                s for s in self._subscriptions
                if s.user_id == user_id and (only is None or s is only)
            ]
        if not targets:
            return

        try:
            snapshot = load_snapshot(user_id)
        except Exception as e:
            logger.error("snapshot_load_failed", user_id=user_id, error=str(e))
            for subscription in targets:
                if subscription.on_error:
                    subscription.on_error(e)
            return

        for subscription in targets:
            if subscription.active:
                subscription.on_snapshot(list(snapshot))
