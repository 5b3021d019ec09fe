"""
Session models and encrypted on-device persistence.

The session (token + user profile) and the biometric preference are the only
data this client keeps locally; everything else lives on the Khaata backend.
"""

from .models import Session, User
from .secure_store import SecureStore

__all__ = ["Session", "User", "SecureStore"]
