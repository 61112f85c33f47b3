"""
In-Memory Auth Provider

Stands in for Firebase Authentication in tests and demo mode.
Rejects the same situations the managed provider rejects (duplicate
email, wrong password, unknown federated token).
"""

from typing import Optional
from uuid import uuid4

from financely.models.transaction import UserIdentity
from financely.services.auth.interface import (
    AuthError,
    AuthProviderInterface,
    IdentityStreamMixin,
)


class InMemoryAuthProvider(IdentityStreamMixin, AuthProviderInterface):
    """Accounts kept in a dict keyed by lowercased email."""

    def __init__(self):
        self._init_identity_stream()
        self._accounts: dict[str, tuple[str, UserIdentity]] = {}
        self._federated: dict[str, UserIdentity] = {}

    def register_federated_token(self, id_token: str, identity: UserIdentity) -> None:
        """Make a federated token acceptable to sign_in_with_federated_identity."""
        self._federated[id_token] = identity

    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: str,
    ) -> UserIdentity:
        key = email.strip().lower()
        if key in self._accounts:
            raise AuthError("An account with this email already exists", code="EMAIL_EXISTS")

        identity = UserIdentity(
            uid=uuid4().hex,
            email=email.strip(),
            display_name=display_name or None,
        )
        self._accounts[key] = (password, identity)
        self._set_identity(identity)
        return identity

    async def sign_in(self, email: str, password: str) -> UserIdentity:
        account = self._accounts.get(email.strip().lower())
        if account is None or account[0] != password:
            raise AuthError("Incorrect email or password", code="INVALID_LOGIN_CREDENTIALS")

        identity = account[1]
        self._set_identity(identity)
        return identity

    async def sign_in_with_federated_identity(self, id_token: str) -> UserIdentity:
        identity: Optional[UserIdentity] = self._federated.get(id_token)
        if identity is None:
            raise AuthError("Google sign-in was rejected", code="INVALID_IDP_RESPONSE")

        self._set_identity(identity)
        return identity

    async def sign_out(self) -> None:
        self._set_identity(None)
