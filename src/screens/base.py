from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Type, TypeVar, Union

from auth.context import AuthContext
from auth.guard import unlock
from common.biometric import BiometricGate
from common.forms import first_error, validate_form
from common.khaata_api import KhaataApiError, KhaataClient, KhaataError
from common.toast import Toaster
from state.models import Session


logger = logging.getLogger(__name__)

T = TypeVar("T")
F = TypeVar("F")


@dataclass
class ScreenContext:
    """Everything a screen needs: the session store, a toaster and the biometric gate."""

    auth: AuthContext
    toaster: Toaster = field(default_factory=Toaster)
    gate: Optional[BiometricGate] = None
    _unlocked: Optional[Session] = field(default=None, init=False, repr=False)

    @property
    def client(self) -> KhaataClient:
        return self.auth.client

    def session(self) -> Session:
        """The current session, passing the biometric gate at most once per session."""
        current = self.auth.session
        if current is not None and current is self._unlocked:
            return current
        self._unlocked = unlock(self.auth, self.gate)
        return self._unlocked


def validated(sc: ScreenContext, schema: Type[F], values: Mapping[str, Any]) -> Optional[F]:
    """Validate form input, toasting the first error on failure."""
    form, errors = validate_form(schema, values)  # type: ignore[type-var]
    if errors:
        sc.toaster.error(first_error(errors))
        return None
    return form


def call_api(
    sc: ScreenContext,
    request: Callable[[Session], T],
    *,
    fallback: str,
    success: Union[None, str, Callable[[T], str]] = None,
) -> Optional[T]:
    """
    Run one authenticated request and surface the outcome as a toast.

    - Server-reported failures show the server message (or `fallback`).
    - Transport/decoding failures show `fallback`.
    - On success, `success` (a message or a callable building one) is toasted.

    Raises NotAuthenticatedError when there is no session to use.
    """
    session = sc.session()
    try:
        result = request(session)
    except KhaataApiError as e:
        sc.toaster.error(e.message or fallback)
        return None
    except KhaataError:
        logger.exception("Request failed")
        sc.toaster.error(fallback)
        return None
    if success is not None:
        sc.toaster.success(success(result) if callable(success) else success)
    return result


def clean(values: Dict[str, Any]) -> Dict[str, Any]:
    """Drop options the user did not supply."""
    return {k: v for k, v in values.items() if v is not None}


__all__ = ["ScreenContext", "call_api", "clean", "validated"]
