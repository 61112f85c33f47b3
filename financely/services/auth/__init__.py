"""Auth provider services package."""

from financely.services.auth.interface import (
    AuthConfigurationError,
    AuthError,
    AuthProviderInterface,
)
from financely.services.auth.firebase_auth import FirebaseAuthProvider
from financely.services.auth.memory import InMemoryAuthProvider

__all__ = [
    "AuthConfigurationError",
    "AuthError",
    "AuthProviderInterface",
    "FirebaseAuthProvider",
    "InMemoryAuthProvider",
]
