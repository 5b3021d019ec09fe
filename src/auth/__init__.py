"""
Session lifecycle and route guarding.

- context: AuthContext, the shared token + user store
- guard: redirect rules and the biometric unlock step
"""

from .context import AuthContext, AuthResult
from .guard import NotAuthenticatedError, require_session, resolve_route, unlock

__all__ = [
    "AuthContext",
    "AuthResult",
    "NotAuthenticatedError",
    "require_session",
    "resolve_route",
    "unlock",
]
