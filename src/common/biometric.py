from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from state.secure_store import SecureStore


logger = logging.getLogger(__name__)

BIOMETRIC_PREFERENCE_KEY = "biometric_enabled"
PROMPT_MESSAGE = "Authenticate to access Khaata App"

USER_CANCEL = "user_cancel"


@dataclass(frozen=True)
class AuthenticationOutcome:
    """Raw result reported by a platform authenticator."""

    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class BiometricResult:
    success: bool
    error: Optional[str] = None


class BiometricAuthenticator(Protocol):
    def has_hardware(self) -> bool: ...

    def is_enrolled(self) -> bool: ...

    def authenticate(
        self, *, prompt_message: str, cancel_label: str, fallback_label: str
    ) -> AuthenticationOutcome: ...


class UnavailableAuthenticator:
    """Authenticator for hosts without biometric hardware."""

    def has_hardware(self) -> bool:
        return False

    def is_enrolled(self) -> bool:
        return False

    def authenticate(
        self, *, prompt_message: str, cancel_label: str, fallback_label: str
    ) -> AuthenticationOutcome:
        return AuthenticationOutcome(success=False, error="not_available")


class BiometricGate:
    """
    Optional biometric check in front of the stored session.

    Notes
    - The on/off preference lives in the secure store as "true"/"false";
      absent or unreadable means disabled.
    - Availability requires both hardware and an enrolled credential.
    """

    def __init__(self, store: SecureStore, authenticator: Optional[BiometricAuthenticator] = None) -> None:
        self._store = store
        self._authenticator = authenticator or UnavailableAuthenticator()

    def is_available(self) -> bool:
        try:
            return bool(self._authenticator.has_hardware() and self._authenticator.is_enrolled())
        except Exception:
            logger.exception("Error checking biometric availability")
            return False

    def get_preference(self) -> bool:
        try:
            return self._store.get_item(BIOMETRIC_PREFERENCE_KEY) == "true"
        except Exception:
            logger.exception("Error getting biometric preference")
            return False

    def set_preference(self, enabled: bool) -> None:
        try:
            self._store.set_item(BIOMETRIC_PREFERENCE_KEY, "true" if enabled else "false")
        except Exception:
            logger.exception("Error setting biometric preference")
            raise

    def authenticate(self) -> BiometricResult:
        try:
            if not self.is_available():
                return BiometricResult(
                    success=False,
                    error="Biometric authentication is not available on this device",
                )
            outcome = self._authenticator.authenticate(
                prompt_message=PROMPT_MESSAGE,
                cancel_label="Cancel",
                fallback_label="Use Passcode",
            )
        except Exception as exc:
            logger.exception("Biometric authentication error")
            return BiometricResult(success=False, error=str(exc) or "Unknown error occurred")

        if outcome.success:
            return BiometricResult(success=True)
        if outcome.error == USER_CANCEL:
            return BiometricResult(success=False, error="Authentication was cancelled")
        return BiometricResult(success=False, error="Biometric authentication failed")


__all__ = [
    "AuthenticationOutcome",
    "BiometricAuthenticator",
    "BiometricGate",
    "BiometricResult",
    "UnavailableAuthenticator",
    "BIOMETRIC_PREFERENCE_KEY",
]
