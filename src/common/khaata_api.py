from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from .entities import (
    BalanceBucket,
    Contact,
    GroupTransaction,
    LedgerTransaction,
    MessMonth,
    MessRecord,
    MessReport,
    MonthlySummary,
    Notification,
    PersonalLedger,
    PersonalTransaction,
    ReportFile,
)


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000/api"

_FILENAME_RE = re.compile(r'filename="?([^";]+)"?')


class KhaataError(RuntimeError):
    """Base error for the Khaata API client (network and decoding failures)."""


class KhaataApiError(KhaataError):
    """API returned `success: false` or an unexpected structure."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        errors: Optional[List[Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.errors = errors or []


class KhaataAuthError(KhaataApiError):
    """Bearer token missing, invalid or expired (HTTP 401/403)."""


class ApiResponse(BaseModel):
    """The `{ success, message, data? }` envelope every endpoint returns."""

    success: bool
    message: str = ""
    data: Any = None


def _bearer(token: str) -> Dict[str, str]:
    if not token:
        raise KhaataAuthError("No authentication token found")
    return {"Authorization": f"Bearer {token}"}


def _iso(d: date | str) -> str:
    return d.isoformat() if isinstance(d, date) else d


class KhaataClient:
    """
    Minimal client for the Khaata REST API.

    Notes
    - JSON request bodies; authenticated calls take the bearer token explicitly.
    - Every response is checked against the `{success, message, data}` envelope.
      `success: false` raises KhaataApiError carrying the server message.
    - No retries and no backoff: one request per call.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 15.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=self._base_url, timeout=self._timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "KhaataClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --------------- Auth ---------------
    def login(self, email: str, password: str) -> ApiResponse:
        return self._request("POST", "/auth/login", json_body={"email": email, "password": password})

    def register(self, name: str, email: str, password: str, confirm_password: str) -> ApiResponse:
        body = {"name": name, "email": email, "password": password, "confirmPassword": confirm_password}
        return self._request("POST", "/auth/register", json_body=body)

    def send_signup_otp(self, name: str, email: str, password: str) -> ApiResponse:
        body = {"name": name, "email": email, "password": password}
        return self._request("POST", "/auth/send-otp", json_body=body)

    def verify_signup_otp(self, email: str, otp: str) -> ApiResponse:
        return self._request("POST", "/auth/verify-otp", json_body={"email": email, "otp": otp})

    def resend_signup_otp(self, email: str) -> ApiResponse:
        return self._request("POST", "/auth/resend-otp", json_body={"email": email})

    def change_password(
        self, token: str, current_password: str, new_password: str, confirm_new_password: str
    ) -> ApiResponse:
        body = {
            "currentPassword": current_password,
            "newPassword": new_password,
            "confirmNewPassword": confirm_new_password,
        }
        return self._request("POST", "/auth/change-password", token=token, json_body=body)

    def delete_account(self, token: str) -> ApiResponse:
        return self._request("DELETE", "/auth/delete-account", token=token)

    def backup_data(self, token: str) -> Dict[str, Any]:
        """Fetch the full account export. The body is the backup document itself, not an envelope."""
        resp = self._send("GET", "/auth/backup-data", token=token)
        payload = self._decode_json(resp)
        if resp.status_code != 200:
            raise self._error_from(resp.status_code, payload, "Failed to backup data")
        if not isinstance(payload, dict):
            raise KhaataApiError("Malformed backup document", status_code=resp.status_code)
        return payload

    # --------------- Contacts ---------------
    def list_contacts(self, token: str) -> List[Contact]:
        data = self._request("GET", "/contacts", token=token).data
        return self._parse_list(Contact, data)

    def get_contact(self, token: str, contact_id: str) -> Contact:
        data = self._request("GET", f"/contacts/{contact_id}", token=token).data
        return self._parse(Contact, data)

    def create_contact(self, token: str, *, name: str, phone: str, email: Optional[str] = None) -> Contact:
        body: Dict[str, Any] = {"name": name, "phone": phone}
        if email:
            body["email"] = email
        data = self._request("POST", "/contacts", token=token, json_body=body).data
        return self._parse(Contact, data)

    def update_contact(
        self, token: str, contact_id: str, *, name: str, phone: str, email: Optional[str] = None
    ) -> Contact:
        body: Dict[str, Any] = {"name": name, "phone": phone}
        if email:
            body["email"] = email
        data = self._request("PUT", f"/contacts/{contact_id}", token=token, json_body=body).data
        return self._parse(Contact, data)

    def delete_contact(self, token: str, contact_id: str) -> str:
        return self._request("DELETE", f"/contacts/{contact_id}", token=token).message

    def balance_buckets(self, token: str) -> List[BalanceBucket]:
        data = self._request("GET", "/contacts/summary/buckets", token=token).data
        buckets = data.get("buckets") if isinstance(data, dict) else None
        return self._parse_list(BalanceBucket, buckets)

    # --------------- Contact ledger ---------------
    def list_transactions(self, token: str, *, contact_id: Optional[str] = None) -> List[LedgerTransaction]:
        params = {"contact_id": contact_id} if contact_id else None
        data = self._request("GET", "/transactions", token=token, params=params).data
        return self._parse_list(LedgerTransaction, data)

    def create_transaction(
        self, token: str, *, contact_id: str, amount: float, payer: str, note: Optional[str] = None
    ) -> LedgerTransaction:
        body: Dict[str, Any] = {"contactId": contact_id, "amount": amount, "payer": payer}
        if note:
            body["note"] = note
        data = self._request("POST", "/transactions", token=token, json_body=body).data
        return self._parse(LedgerTransaction, data)

    def monthly_summary(self, token: str) -> List[MonthlySummary]:
        data = self._request("GET", "/transactions/summary/monthly", token=token).data
        return self._parse_list(MonthlySummary, data)

    # --------------- Personal ledger ---------------
    def list_personal_transactions(
        self,
        token: str,
        *,
        type: Optional[str] = None,
        start_date: Optional[date | str] = None,
        end_date: Optional[date | str] = None,
    ) -> PersonalLedger:
        params: Dict[str, str] = {}
        if type:
            params["type"] = type
        if start_date:
            params["startDate"] = _iso(start_date)
        if end_date:
            params["endDate"] = _iso(end_date)
        data = self._request("GET", "/personal-transactions", token=token, params=params or None).data
        return self._parse(PersonalLedger, data)

    def add_personal_transaction(self, token: str, body: Dict[str, Any]) -> PersonalTransaction:
        data = self._request("POST", "/personal-transactions/add", token=token, json_body=body).data
        return self._parse(PersonalTransaction, self._unwrap(data, "transaction"))

    def update_personal_transaction(self, token: str, transaction_id: str, body: Dict[str, Any]) -> PersonalTransaction:
        data = self._request(
            "PUT", f"/personal-transactions/{transaction_id}", token=token, json_body=body
        ).data
        return self._parse(PersonalTransaction, self._unwrap(data, "transaction"))

    def delete_personal_transaction(self, token: str, transaction_id: str) -> str:
        return self._request("DELETE", f"/personal-transactions/{transaction_id}", token=token).message

    # --------------- Group ledger ---------------
    def list_group_transactions(self, token: str) -> List[GroupTransaction]:
        data = self._request("GET", "/group-transactions", token=token).data
        return self._parse_list(GroupTransaction, data)

    def create_group_transaction(self, token: str, body: Dict[str, Any]) -> GroupTransaction:
        data = self._request("POST", "/group-transactions", token=token, json_body=body).data
        return self._parse(GroupTransaction, data)

    # --------------- Mess ---------------
    def add_mess_record(
        self, token: str, *, date: date | str, meal_type: str, price: float, person_count: int = 1
    ) -> MessRecord:
        body = {"date": _iso(date), "mealType": meal_type, "price": price, "personCount": person_count}
        data = self._request("POST", "/mess/add", token=token, json_body=body).data
        return self._parse(MessRecord, self._unwrap(data, "record"))

    def list_mess_records(self, token: str, user_id: str) -> List[MessRecord]:
        data = self._request("GET", f"/mess/user/{user_id}", token=token).data
        return self._parse_list(MessRecord, self._unwrap(data, "records"))

    def delete_mess_record(self, token: str, record_id: str) -> str:
        return self._request("DELETE", f"/mess/delete/{record_id}", token=token).message

    def mess_months(self, token: str, user_id: str) -> List[MessMonth]:
        data = self._request("GET", f"/mess/months/{user_id}", token=token).data
        return self._parse_list(MessMonth, self._unwrap(data, "months"))

    def mess_monthly(self, token: str, user_id: str, *, year: int, month: int) -> MessReport:
        params = {"year": str(year), "month": str(month)}
        data = self._request("GET", f"/mess/monthly/{user_id}", token=token, params=params).data
        return self._parse(MessReport, data)

    def mess_date_range(
        self, token: str, user_id: str, *, start_date: date | str, end_date: date | str
    ) -> MessReport:
        params = {"startDate": _iso(start_date), "endDate": _iso(end_date)}
        data = self._request("GET", f"/mess/dateRange/{user_id}", token=token, params=params).data
        return self._parse(MessReport, data)

    # --------------- Reports ---------------
    def export_contact_report(self, token: str, contact_id: str, *, format: str = "pdf") -> ReportFile:
        return self._download(f"/reports/contact/{contact_id}", token=token, params={"format": format})

    def export_user_report(self, token: str, *, format: str = "pdf") -> ReportFile:
        return self._download("/reports/user", token=token, params={"format": format})

    # --------------- Notifications ---------------
    def list_notifications(self, token: str) -> List[Notification]:
        data = self._request("GET", "/notifications", token=token).data
        return self._parse_list(Notification, data)

    # --------------- Internal ---------------
    def _send(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        headers = _bearer(token) if token is not None else {}
        logger.debug("%s %s", method, path)
        try:
            return self._client.request(method, path, json=json_body, params=params, headers=headers)
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise KhaataError(f"Request to {path} failed: {exc}") from exc

    def _request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> ApiResponse:
        resp = self._send(method, path, token=token, json_body=json_body, params=params)
        payload = self._decode_json(resp)

        # Expect the envelope: { success: bool, message: str, data?: {...} }
        if not isinstance(payload, dict) or "success" not in payload:
            raise KhaataApiError("Malformed response from Khaata API", status_code=resp.status_code)
        if payload.get("success") is True:
            return ApiResponse(
                success=True,
                message=str(payload.get("message") or ""),
                data=payload.get("data"),
            )
        raise self._error_from(resp.status_code, payload, "Request failed")

    def _download(self, path: str, *, token: str, params: Dict[str, str]) -> ReportFile:
        resp = self._send("GET", path, token=token, params=params)
        if resp.status_code != 200:
            try:
                payload = resp.json()
            except ValueError:
                payload = None
            raise self._error_from(resp.status_code, payload, "Failed to export transactions")
        disposition = resp.headers.get("content-disposition", "")
        match = _FILENAME_RE.search(disposition)
        return ReportFile(
            content=resp.content,
            content_type=resp.headers.get("content-type", "application/octet-stream"),
            filename=match.group(1) if match else None,
        )

    @staticmethod
    def _decode_json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise KhaataError(
                f"Failed to parse JSON from Khaata API (HTTP {resp.status_code})"
            ) from exc

    @staticmethod
    def _error_from(status_code: int, payload: Any, fallback: str) -> KhaataApiError:
        message = fallback
        errors: List[Any] = []
        if isinstance(payload, dict):
            message = str(payload.get("message") or fallback)
            if isinstance(payload.get("errors"), list):
                errors = payload["errors"]
        cls = KhaataAuthError if status_code in (401, 403) else KhaataApiError
        return cls(message, status_code=status_code, errors=errors)

    @staticmethod
    def _unwrap(data: Any, key: str) -> Any:
        if isinstance(data, dict) and key in data:
            return data[key]
        return data

    @staticmethod
    def _parse(model: type, data: Any) -> Any:
        if not isinstance(data, dict):
            raise KhaataApiError(f"Expected {model.__name__} object in response")
        try:
            return model.model_validate(data)
        except ValidationError as ve:
            raise KhaataApiError(f"Failed to parse {model.__name__}: {ve}") from ve

    @staticmethod
    def _parse_list(model: type, data: Any) -> List[Any]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise KhaataApiError(f"Expected list of {model.__name__} in response")
        items: Iterable[Any] = data
        try:
            return [model.model_validate(item) for item in items]
        except ValidationError as ve:
            raise KhaataApiError(f"Failed to parse {model.__name__}: {ve}") from ve


__all__ = [
    "ApiResponse",
    "KhaataApiError",
    "KhaataAuthError",
    "KhaataClient",
    "KhaataError",
]
