from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from pydantic import ValidationError

from common.khaata_api import ApiResponse, KhaataApiError, KhaataClient, KhaataError
from state.models import Session, User
from state.secure_store import SecureStore


logger = logging.getLogger(__name__)

TOKEN_KEY = "authToken"
USER_KEY = "userData"

NETWORK_ERROR = "Network error. Please try again."
NO_TOKEN = "No authentication token found"

Listener = Callable[[Optional[Session]], None]


@dataclass(frozen=True)
class AuthResult:
    success: bool
    message: str


class AuthContext:
    """
    Shared session store: token + user profile backed by the secure store.

    Usage
    - Call `load()` once at startup; `is_loading` stays True until it returns.
    - `login` / `register` / `verify_signup_otp` persist the returned session.
    - `logout` / a successful `delete_account` clear it.
    - `subscribe(cb)` calls `cb(session_or_none)` after every change.

    Notes
    - Token and user are always written and deleted together. A store holding
      only one of the two entries loads as "no session".
    - Operations never raise for server or network failures; they return an
      AuthResult with a user-facing message.
    """

    def __init__(self, store: SecureStore, client: KhaataClient) -> None:
        self._store = store
        self._client = client
        self._session: Optional[Session] = None
        self._is_loading = True
        self._listeners: List[Listener] = []

    # --------------- Read side ---------------
    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def token(self) -> Optional[str]:
        return self._session.token if self._session else None

    @property
    def user(self) -> Optional[User]:
        return self._session.user if self._session else None

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def client(self) -> KhaataClient:
        return self._client

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # --------------- Lifecycle ---------------
    def load(self) -> Optional[Session]:
        """Load the persisted session; storage or decode failures leave it empty."""
        try:
            stored_token = self._store.get_item(TOKEN_KEY)
            stored_user = self._store.get_item(USER_KEY)
            if stored_token and stored_user:
                user = User.model_validate(json.loads(stored_user))
                self._set_session(Session(token=stored_token, user=user))
        except (ValueError, ValidationError, OSError):
            logger.exception("Error loading stored auth")
        finally:
            self._is_loading = False
        return self._session

    def login(self, email: str, password: str) -> AuthResult:
        return self._authenticate(lambda: self._client.login(email, password), "Login")

    def register(self, name: str, email: str, password: str, confirm_password: str) -> AuthResult:
        return self._authenticate(
            lambda: self._client.register(name, email, password, confirm_password), "Registration"
        )

    def request_signup_otp(self, name: str, email: str, password: str) -> AuthResult:
        return self._call(lambda: self._client.send_signup_otp(name, email, password), "Send OTP")

    def verify_signup_otp(self, email: str, otp: str) -> AuthResult:
        return self._authenticate(lambda: self._client.verify_signup_otp(email, otp), "Verify OTP")

    def resend_signup_otp(self, email: str) -> AuthResult:
        return self._call(lambda: self._client.resend_signup_otp(email), "Resend OTP")

    def change_password(self, current_password: str, new_password: str, confirm_new_password: str) -> AuthResult:
        token = self.token
        if not token:
            return AuthResult(False, NO_TOKEN)
        return self._call(
            lambda: self._client.change_password(token, current_password, new_password, confirm_new_password),
            "Change password",
        )

    def delete_account(self) -> AuthResult:
        token = self.token
        if not token:
            return AuthResult(False, NO_TOKEN)
        result = self._call(lambda: self._client.delete_account(token), "Delete account")
        if result.success:
            self.logout()
        return result

    def logout(self) -> None:
        try:
            self._store.delete_items([TOKEN_KEY, USER_KEY])
        except (ValueError, OSError):
            logger.exception("Logout error")
        self._set_session(None)

    # --------------- Internal ---------------
    def _call(self, request: Callable[[], ApiResponse], what: str) -> AuthResult:
        try:
            resp = request()
        except KhaataApiError as e:
            return AuthResult(False, e.message)
        except KhaataError:
            logger.exception("%s error", what)
            return AuthResult(False, NETWORK_ERROR)
        return AuthResult(True, resp.message)

    def _authenticate(self, request: Callable[[], ApiResponse], what: str) -> AuthResult:
        try:
            resp = request()
            session = self._session_from(resp)
        except KhaataApiError as e:
            return AuthResult(False, e.message)
        except KhaataError:
            logger.exception("%s error", what)
            return AuthResult(False, NETWORK_ERROR)

        try:
            self._persist(session)
        except (ValueError, OSError):
            logger.exception("%s error: could not persist session", what)
            return AuthResult(False, "Could not save your session. Please try again.")
        self._set_session(session)
        return AuthResult(True, resp.message)

    @staticmethod
    def _session_from(resp: ApiResponse) -> Session:
        data = resp.data if isinstance(resp.data, dict) else {}
        if not data.get("token"):
            raise KhaataError("Malformed session payload: token missing")
        try:
            return Session(token=data.get("token") or "", user=User.model_validate(data.get("user") or {}))
        except ValidationError as ve:
            raise KhaataError(f"Malformed session payload: {ve}") from ve

    def _persist(self, session: Session) -> None:
        self._store.set_items(
            {
                TOKEN_KEY: session.token,
                USER_KEY: json.dumps(session.user.to_storage()),
            }
        )

    def _set_session(self, session: Optional[Session]) -> None:
        self._session = session
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                logger.exception("Session listener failed")


__all__ = ["AuthContext", "AuthResult", "NETWORK_ERROR", "NO_TOKEN", "TOKEN_KEY", "USER_KEY"]
