"""
Firebase Authentication via the Identity Toolkit REST API

The Admin SDK cannot sign users in, so sign-up/sign-in go through the
same REST endpoints the Firebase web SDK uses. Only the uid and profile
fields are kept; tokens are not persisted anywhere.
"""

import asyncio
from typing import Any, Optional
from urllib.parse import urlencode

import requests
import structlog

from financely.config import FirebaseSettings, get_settings
from financely.models.transaction import UserIdentity
from financely.services.auth.interface import (
    AuthConfigurationError,
    AuthError,
    AuthProviderInterface,
    IdentityStreamMixin,
)


logger = structlog.get_logger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"

# Provider error codes mapped to messages a user can act on
FRIENDLY_ERRORS = {
    "EMAIL_EXISTS": "An account with this email already exists",
    "EMAIL_NOT_FOUND": "No account found for this email",
    "INVALID_PASSWORD": "Incorrect password",
    "INVALID_LOGIN_CREDENTIALS": "Incorrect email or password",
    "INVALID_EMAIL": "Please enter a valid email address",
    "USER_DISABLED": "This account has been disabled",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Please try again later",
    "INVALID_IDP_RESPONSE": "Google sign-in was rejected",
}


def _friendly_message(code: str, fallback: str) -> str:
    # Codes can carry a suffix, e.g. "WEAK_PASSWORD : Password should be..."
    base = code.split(" :", 1)[0].strip()
    if base == "WEAK_PASSWORD" and ":" in code:
        return code.split(":", 1)[1].strip()
    return FRIENDLY_ERRORS.get(base, fallback)


class FirebaseAuthProvider(IdentityStreamMixin, AuthProviderInterface):
    """Auth provider backed by Firebase Authentication."""

    def __init__(
        self,
        settings: Optional[FirebaseSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self._init_identity_stream()
        self._settings = settings or get_settings().firebase
        self._session = session or requests.Session()

        if not self._settings.web_api_key:
            raise AuthConfigurationError("FIREBASE_WEB_API_KEY is not set")

    def _post(self, endpoint: str, payload: dict[str, Any], fallback: str) -> dict[str, Any]:
        url = f"{IDENTITY_TOOLKIT_URL}/accounts:{endpoint}"
        try:
            response = self._session.post(
                url,
                params={"key": self._settings.web_api_key},
                json=payload,
                timeout=self._settings.request_timeout_seconds,
            )
        except requests.RequestException as e:
            logger.error("auth_request_failed", endpoint=endpoint, error=str(e))
            raise AuthError("Could not reach the sign-in service", code="NETWORK_ERROR")

        if response.status_code != 200:
            try:
                code = response.json().get("error", {}).get("message", "")
            except ValueError:
                code = ""
            logger.warning("auth_rejected", endpoint=endpoint, code=code)
            raise AuthError(_friendly_message(code, fallback), code=code or None)

        return response.json()

    def _identity_from(self, data: dict[str, Any], **overrides) -> UserIdentity:
        fields = {
            "uid": data["localId"],
            "email": data.get("email"),
            "display_name": data.get("displayName") or None,
            "photo_url": data.get("photoUrl") or None,
        }
        fields.update(overrides)
        return UserIdentity(**fields)

    async def sign_up(
        self,
        email: str,
        password: str,
        display_name: str,
    ) -> UserIdentity:
        data = await asyncio.to_thread(
            self._post,
            "signUp",
            {"email": email, "password": password, "returnSecureToken": True},
            "Failed to create account",
        )
        # The account exists at this point; a missing display name is not fatal
        try:
            await asyncio.to_thread(
                self._post,
                "update",
                {
                    "idToken": data["idToken"],
                    "displayName": display_name,
                    "returnSecureToken": False,
                },
                "Failed to save display name",
            )
        except AuthError as e:
            logger.warning("display_name_update_failed", uid=data["localId"], error=str(e))
        identity = self._identity_from(data, display_name=display_name)
        self._set_identity(identity)
        return identity

    async def sign_in(self, email: str, password: str) -> UserIdentity:
        data = await asyncio.to_thread(
            self._post,
            "signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
            "Failed to login",
        )
        identity = self._identity_from(data)
        self._set_identity(identity)
        return identity

    async def sign_in_with_federated_identity(self, id_token: str) -> UserIdentity:
        data = await asyncio.to_thread(
            self._post,
            "signInWithIdp",
            {
                "postBody": urlencode({"id_token": id_token, "providerId": "google.com"}),
                "requestUri": self._settings.federated_request_uri,
                "returnIdpCredential": True,
                "returnSecureToken": True,
            },
            "Failed to login with Google",
        )
        identity = self._identity_from(data)
        self._set_identity(identity)
        return identity

    async def sign_out(self) -> None:
        self._set_identity(None)
