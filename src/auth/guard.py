from __future__ import annotations

import logging
from typing import Optional

from common.biometric import BiometricGate
from state.models import Session

from .context import AuthContext


logger = logging.getLogger(__name__)

AUTH_ROUTES = frozenset({"login", "register"})
PROTECTED_ROUTES = frozenset(
    {
        "dashboard",
        "contacts",
        "contact-detail",
        "personal-khaata",
        "group-khaata",
        "mess",
        "mess-analytics",
        "reports",
        "notifications",
        "settings",
        "change-password",
    }
)


class NotAuthenticatedError(RuntimeError):
    """Raised when a protected screen is opened without a session."""


class BiometricLockedError(NotAuthenticatedError):
    """Raised when the biometric gate refused to release the session."""


def resolve_route(ctx: AuthContext, target: str) -> Optional[str]:
    """Return where `target` should redirect to, or None to stay.

    Rules
    - While the session is still loading, never redirect.
    - Without a user, protected routes redirect to "login".
    - With a user, auth screens redirect to "dashboard".
    """
    if ctx.is_loading:
        return None
    segment = target.strip("/").split("/", 1)[0]
    if ctx.user is None and segment in PROTECTED_ROUTES:
        logger.debug("Redirecting %s to login", segment)
        return "login"
    if ctx.user is not None and segment in AUTH_ROUTES:
        logger.debug("Redirecting %s to dashboard", segment)
        return "dashboard"
    return None


def require_session(ctx: AuthContext) -> Session:
    if ctx.is_loading:
        ctx.load()
    session = ctx.session
    if session is None:
        raise NotAuthenticatedError("Please log in to continue.")
    return session


def unlock(ctx: AuthContext, gate: Optional[BiometricGate] = None) -> Session:
    """Hand out the session, passing the biometric check first when it is enabled."""
    session = require_session(ctx)
    if gate is None or not gate.get_preference():
        return session
    result = gate.authenticate()
    if not result.success:
        raise BiometricLockedError(result.error or "Biometric authentication failed")
    return session


__all__ = [
    "AUTH_ROUTES",
    "BiometricLockedError",
    "NotAuthenticatedError",
    "PROTECTED_ROUTES",
    "require_session",
    "resolve_route",
    "unlock",
]
