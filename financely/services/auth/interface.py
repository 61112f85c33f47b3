"""
Abstract Auth Provider Interface

Authentication is delegated to a managed provider. The rest of the app
only needs one thing from it: after a successful sign-in, an opaque uid
is available to scope store queries.

Providers also publish identity changes (sign-in, sign-out) to listeners,
the way a client SDK's auth-state stream does. The session layer listens
to that stream to start and stop the live transaction subscription.
"""

import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from financely.models.transaction import UserIdentity


IdentityCallback = Callable[[Optional[UserIdentity]], None]


class AuthError(Exception):
    """An auth operation was rejected or could not reach the provider."""

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code
        super().__init__(message)


class AuthConfigurationError(AuthError):
    """The provider is not configured (missing API key etc.)."""
    pass


class AuthProviderInterface(ABC):
    """
    Abstract interface for the auth provider.
    """

    @abstractmethod
    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: str,
    ) -> UserIdentity:
        """
        Create an account with email/password and set its display name.

        Raises:
            AuthError: If the provider rejects the request
        """
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> UserIdentity:
        """
        Sign in with email/password.

        Raises:
            AuthError: If the credentials are rejected
        """
        pass

    @abstractmethod
    async def sign_in_with_federated_identity(self, id_token: str) -> UserIdentity:
        """
        Sign in with an identity token from a federated provider (Google).

        Raises:
            AuthError: If the token is rejected
        """
        pass

    @abstractmethod
    async def sign_out(self) -> None:
        """Forget the current identity."""
        pass

    @property
    @abstractmethod
    def current_identity(self) -> Optional[UserIdentity]:
        """The signed-in user, or None."""
        pass

    @abstractmethod
    def on_identity_changed(self, callback: IdentityCallback) -> Callable[[], None]:
        """
        Register for identity changes.

        The callback is invoked immediately with the current identity and
        then after every change.

        Returns:
            A function that removes the listener
        """
        pass


class IdentityStreamMixin:
    """Listener bookkeeping shared by concrete providers."""

    def _init_identity_stream(self) -> None:
        self._identity: Optional[UserIdentity] = None
        self._listeners: list[IdentityCallback] = []
        self._listeners_lock = threading.Lock()

    @property
    def current_identity(self) -> Optional[UserIdentity]:
        return self._identity

    def on_identity_changed(self, callback: IdentityCallback) -> Callable[[], None]:
        with self._listeners_lock:
            self._listeners.append(callback)
        callback(self._identity)

        def unsubscribe() -> None:
            with self._listeners_lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        return unsubscribe

    def _set_identity(self, identity: Optional[UserIdentity]) -> None:
        self._identity = identity
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(identity)
