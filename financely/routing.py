"""
Route resolution.

Three routes exist. Protected ones redirect to sign-up when nobody is
signed in; the sign-up page redirects to the dashboard when someone is.
"""

from enum import Enum
from typing import Optional

from financely.models.transaction import UserIdentity


class Route(str, Enum):
    ROOT = "/"
    SIGNUP = "/signup"
    DASHBOARD = "/dashboard"


def resolve_route(requested: str, identity: Optional[UserIdentity]) -> Route:
    """Page to actually render for a requested path. Unknown paths act like '/'."""
    try:
        route = Route(requested)
    except ValueError:
        route = Route.ROOT

    if identity is None:
        return Route.SIGNUP
    if route in (Route.ROOT, Route.SIGNUP):
        return Route.DASHBOARD
    return route
