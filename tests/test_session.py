"""Tests for the auth session, the live feed and route resolution."""

from decimal import Decimal

import pytest

from financely.routing import Route, resolve_route
from financely.services.storage import StorageError
from financely.session import AuthSession, TransactionFeed

from tests.conftest import OTHER_USER, USER, RecordingStore, make_new_transaction


class TestAuthSession:
    """Tests for identity and loading state."""

    def test_loading_until_first_report(self, auth_provider):
        """Test that loading clears once the provider reports."""
        session = AuthSession(auth_provider)
        assert session.loading is True

        session.start()

        assert session.loading is False
        assert session.identity is None
        session.stop()

    @pytest.mark.asyncio
    async def test_tracks_sign_in_and_out(self, auth_provider, session):
        """Test that identity follows the provider."""
        await auth_provider.sign_up("jane@example.com", "secret1", display_name="Jane")
        assert session.is_authenticated
        assert session.identity.display_name == "Jane"

        await auth_provider.sign_out()
        assert session.user_id is None

    @pytest.mark.asyncio
    async def test_stop_detaches_from_provider(self, auth_provider, session):
        """Test that a stopped session ignores later changes."""
        session.stop()
        await auth_provider.sign_up("jane@example.com", "secret1", display_name="Jane")
        assert session.identity is None


class TestTransactionFeed:
    """Tests for the subscription lifecycle."""

    def test_no_subscription_while_signed_out(self, store, feed):
        """Test that nobody signed in means nothing to watch."""
        assert feed.subscription is None
        assert store.publisher.subscriber_count() == 0

    @pytest.mark.asyncio
    async def test_subscribes_on_sign_in(self, store, feed, signed_in):
        """Test that the feed opens one subscription for the user."""
        assert feed.subscription is not None
        assert store.publisher.subscriber_count(signed_in.uid) == 1

    @pytest.mark.asyncio
    async def test_snapshot_replaced_on_every_write(self, store, feed, signed_in):
        """Test that inserts show up through the subscription."""
        await store.insert(signed_in.uid, make_new_transaction("First", "1"))
        await store.insert(signed_in.uid, make_new_transaction("Second", "2"))

        assert [t.name for t in feed.transactions] == ["Second", "First"]
        assert feed.summary().total_expense == Decimal("3.00")

    @pytest.mark.asyncio
    async def test_other_users_records_never_delivered(self, store, feed, signed_in):
        """Test the per-user scope of the subscription."""
        await store.insert("someone-else", make_new_transaction("Theirs", "99"))
        await store.insert(signed_in.uid, make_new_transaction("Mine", "1"))

        assert [t.name for t in feed.transactions] == ["Mine"]

    @pytest.mark.asyncio
    async def test_sign_out_tears_down_subscription(
        self, auth_provider, store, feed, signed_in,
    ):
        """Test that signing out leaves no dangling subscription."""
        await store.insert(signed_in.uid, make_new_transaction())
        subscription = feed.subscription

        await auth_provider.sign_out()

        assert subscription.active is False
        assert feed.subscription is None
        assert feed.transactions == []
        assert store.publisher.subscriber_count() == 0

    @pytest.mark.asyncio
    async def test_user_switch_resubscribes(self, auth_provider, store, feed):
        """Test that switching users moves the subscription."""
        auth_provider.register_federated_token("token-a", USER)
        auth_provider.register_federated_token("token-b", OTHER_USER)
        await store.insert(USER.uid, make_new_transaction("Jane's", "1"))
        await store.insert(OTHER_USER.uid, make_new_transaction("Sam's", "2"))

        await auth_provider.sign_in_with_federated_identity("token-a")
        first = feed.subscription
        assert [t.name for t in feed.transactions] == ["Jane's"]

        await auth_provider.sign_in_with_federated_identity("token-b")

        assert first.active is False
        assert [t.name for t in feed.transactions] == ["Sam's"]
        assert store.publisher.subscriber_count() == 1

    @pytest.mark.asyncio
    async def test_same_user_reported_twice_keeps_subscription(
        self, auth_provider, feed, signed_in,
    ):
        """Test that a repeated identity report does not resubscribe."""
        subscription = feed.subscription
        await auth_provider.sign_in("jane@example.com", "secret123")
        assert feed.subscription is subscription

    @pytest.mark.asyncio
    async def test_stop_unsubscribes(self, store, session, signed_in):
        """Test explicit stop."""
        feed = TransactionFeed(store, session)
        feed.start()
        assert store.publisher.subscriber_count() == 1

        feed.stop()
        assert store.publisher.subscriber_count() == 0

    @pytest.mark.asyncio
    async def test_subscription_error_becomes_notification(self, session, signed_in):
        """Test that a broken subscription is reported, not raised."""

        class BrokenStore(RecordingStore):
            def subscribe(self, user_id, on_snapshot, on_error=None):
                raise StorageError("listener refused")

        feed = TransactionFeed(BrokenStore(), session)
        feed.start()

        notifications = feed.drain_notifications()
        assert len(notifications) == 1
        assert notifications[0].is_error
        assert feed.drain_notifications() == []

    def test_late_snapshot_for_previous_user_ignored(self, store, session):
        """Test that a delivery tagged for another user is dropped."""
        feed = TransactionFeed(store, session)
        feed._subscribed_uid = USER.uid

        feed._on_snapshot(OTHER_USER.uid, [object()])

        assert feed.transactions == []


class TestRouting:
    """Tests for route resolution."""

    def test_unauthenticated_goes_to_signup(self):
        """Test that protected routes redirect."""
        assert resolve_route("/", None) == Route.SIGNUP
        assert resolve_route("/dashboard", None) == Route.SIGNUP
        assert resolve_route("/signup", None) == Route.SIGNUP

    def test_authenticated_goes_to_dashboard(self):
        """Test that root and sign-up redirect to the dashboard."""
        assert resolve_route("/", USER) == Route.DASHBOARD
        assert resolve_route("/signup", USER) == Route.DASHBOARD
        assert resolve_route("/dashboard", USER) == Route.DASHBOARD

    def test_unknown_path_acts_like_root(self):
        """Test unknown paths."""
        assert resolve_route("/nope", USER) == Route.DASHBOARD
        assert resolve_route("/nope", None) == Route.SIGNUP
