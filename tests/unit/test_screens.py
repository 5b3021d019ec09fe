from __future__ import annotations

import datetime as dt
import io
import json
from typing import Any, Callable, Dict, List, Tuple

import httpx
import pytest
from cryptography.fernet import Fernet
from rich.console import Console

from auth.context import AuthContext
from auth.guard import NotAuthenticatedError
from common.biometric import AuthenticationOutcome, BiometricGate
from common.khaata_api import KhaataClient
from common.toast import Toaster
from screens import account, contacts, dashboard, group_khaata, mess, personal_khaata, reports, settings
from screens.base import ScreenContext
from state.secure_store import SecureStore


BASE = "http://khaata.test/api"

Route = Tuple[str, str]


class _Backend:
    """Route table keyed by (METHOD, path below /api); records every request."""

    def __init__(self) -> None:
        self.routes: Dict[Route, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []
        self.on("POST", "/auth/login", lambda r: _ok(
            {"token": "tok", "user": {"_id": "u1", "name": "Ada Lovelace", "email": "ada@x.io"}},
            "Login successful",
        ))

    def on(self, method: str, path: str, fn: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method, path)] = fn

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path[len("/api"):]
        fn = self.routes.get((request.method, path))
        if fn is None:
            return httpx.Response(404, json={"success": False, "message": f"No route {path}"})
        return fn(request)


def _ok(data: Any = None, message: str = "ok", status: int = 200) -> httpx.Response:
    return httpx.Response(status, json={"success": True, "message": message, "data": data})


def _fail(message: str, status: int = 400) -> httpx.Response:
    return httpx.Response(status, json={"success": False, "message": message})


@pytest.fixture()
def backend() -> _Backend:
    return _Backend()


@pytest.fixture()
def store(tmp_path) -> SecureStore:
    return SecureStore(path=tmp_path / "store.bin", fernet_key=Fernet.generate_key())


@pytest.fixture()
def sc(backend, store) -> ScreenContext:
    http = httpx.Client(base_url=BASE, transport=httpx.MockTransport(backend))
    auth = AuthContext(store, KhaataClient(base_url=BASE, client=http))
    auth.load()
    return ScreenContext(auth=auth, toaster=Toaster(Console(file=io.StringIO())), gate=BiometricGate(store))


def _login(sc: ScreenContext) -> None:
    assert account.login(sc, "ada@x.io", "secret1") is True


# --------------- Account ---------------
def test_login_toasts_success(sc):
    _login(sc)
    assert sc.toaster.last.type == "success"
    assert sc.toaster.last.message == "Login successful"


def test_login_validation_happens_before_any_request(sc, backend):
    assert account.login(sc, "nope", "secret1") is False
    assert sc.toaster.last.message == "Please enter a valid email"
    assert backend.requests == []


def test_register_sends_otp_then_verify_creates_session(sc, backend):
    backend.on("POST", "/auth/send-otp", lambda r: _ok(message="OTP sent"))
    backend.on("POST", "/auth/verify-otp", lambda r: _ok(
        {"token": "tok-new", "user": {"_id": "u2", "name": "Bob", "email": "bob@x.io"}}, "Account created"
    ))
    assert account.register(sc, "Bob", "bob@x.io", "secret1", "secret1") is True
    assert sc.toaster.last.message == "OTP sent to your email"
    assert sc.auth.session is None

    assert account.verify_otp(sc, "bob@x.io", "123456") is True
    assert sc.auth.token == "tok-new"


def test_verify_failure_shows_server_message(sc, backend):
    backend.on("POST", "/auth/verify-otp", lambda r: _fail("OTP expired"))
    assert account.verify_otp(sc, "bob@x.io", "123456") is False
    assert sc.toaster.last.type == "error"
    assert sc.toaster.last.message == "OTP expired"


def test_protected_screen_without_session_raises(sc):
    with pytest.raises(NotAuthenticatedError):
        contacts.list_contacts(sc)


# --------------- Contacts ---------------
def test_contacts_list_with_search(sc, backend):
    backend.on("GET", "/contacts", lambda r: _ok([
        {"_id": "c1", "name": "Ravi", "phone": "9876543210", "balance": 100},
        {"_id": "c2", "name": "Meera", "phone": "9123456780", "balance": -40},
    ]))
    _login(sc)
    found = contacts.list_contacts(sc, search="rav")
    assert [c.id for c in found] == ["c1"]


def test_add_contact_server_error_is_toasted(sc, backend):
    backend.on("POST", "/contacts", lambda r: _fail("Contact with this phone already exists"))
    _login(sc)
    assert contacts.add_contact(sc, "Ravi", "9876543210") is None
    assert sc.toaster.last.message == "Contact with this phone already exists"


def test_add_transaction_posts_contact_id(sc, backend):
    def create(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body == {"contactId": "c1", "amount": 50.0, "payer": "FRIEND"}
        return _ok({"_id": "t1", "amount": 50, "payer": "FRIEND", "newBalance": 50}, status=201)

    backend.on("POST", "/transactions", create)
    _login(sc)
    tx = contacts.add_transaction(sc, "c1", 50, "friend")
    assert tx.new_balance == 50
    assert sc.toaster.last.message == "Transaction added successfully!"


def test_contacts_search_matches_email(sc, backend):
    backend.on("GET", "/contacts", lambda r: _ok([
        {"_id": "c1", "name": "Ravi", "phone": "9876543210", "email": "ravi@mail.io"},
        {"_id": "c2", "name": "Meera", "phone": "9123456780"},
    ]))
    _login(sc)
    found = contacts.list_contacts(sc, search="RAVI@mail")
    assert [c.id for c in found] == ["c1"]


@pytest.mark.parametrize("amount", ["nan", "inf", "abc"])
def test_add_transaction_rejects_unusable_amount(sc, backend, amount):
    _login(sc)
    sent = len(backend.requests)
    assert contacts.add_transaction(sc, "c1", amount, "USER") is None
    assert sc.toaster.last.message == "Please enter a valid amount"
    assert len(backend.requests) == sent


def test_contact_detail_combines_contact_and_ledger(sc, backend):
    backend.on("GET", "/contacts/c1", lambda r: _ok({"_id": "c1", "name": "Ravi", "phone": "9876543210"}))
    backend.on("GET", "/transactions", lambda r: _ok([{"_id": "t1", "amount": 10, "payer": "USER"}]))
    _login(sc)
    detail = contacts.contact_detail(sc, "c1")
    assert detail.contact.name == "Ravi"
    assert len(detail.transactions) == 1


# --------------- Dashboard ---------------
def test_summarize_contacts_splits_receivables_and_payables():
    from common.entities import Contact

    items = [Contact(id=str(i), name=f"n{i}", phone="9999999999", balance=b) for i, b in enumerate([10, -5, 30, 0, 1, 2, 3, 4])]
    totals = dashboard.summarize_contacts(items)
    assert totals.total_contacts == 8
    assert totals.receivables == 50
    assert totals.payables == 5
    assert totals.contacts_owing == 6
    assert totals.contacts_you_owe == 1
    assert [name for name, _ in totals.top_owing] == ["n2", "n0", "n7", "n6", "n5"]


def test_dashboard_keeps_totals_when_charts_fail(sc, backend):
    backend.on("GET", "/contacts", lambda r: _ok([{"_id": "c1", "name": "Ravi", "phone": "9876543210", "balance": 5}]))
    backend.on("GET", "/transactions/summary/monthly", lambda r: _fail("boom", 500))
    backend.on("GET", "/contacts/summary/buckets", lambda r: _ok({"buckets": [{"key": "zero", "label": "Settled", "count": 1}]}))
    _login(sc)
    data = dashboard.load_dashboard(sc)
    assert data.totals.receivables == 5
    assert data.monthly == []
    assert data.buckets[0].label == "Settled"


# --------------- Personal / group ---------------
def test_personal_add_sends_normalized_payload(sc, backend):
    def add(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"amount": 12.5, "type": "EXPENSE", "date": "2024-05-01"}
        return _ok({"transaction": {"_id": "p1", "amount": 12.5, "type": "EXPENSE"}}, status=201)

    backend.on("POST", "/personal-transactions/add", add)
    _login(sc)
    tx = personal_khaata.add_transaction(sc, 12.5, "expense", date=dt.date(2024, 5, 1))
    assert tx.id == "p1"
    assert sc.toaster.last.message == "Transaction added successfully!"


def test_group_create_reports_per_person_share(sc, backend):
    backend.on("POST", "/group-transactions", lambda r: _ok(
        {"_id": "g1", "totalAmount": 300, "perPersonShare": 100, "contactIds": ["c1", "c2"], "description": "Dinner"},
        status=201,
    ))
    _login(sc)
    tx = group_khaata.create_group_transaction(sc, contact_ids=["c1", "c2"], total_amount=300, description="Dinner")
    assert tx.id == "g1"
    assert sc.toaster.last.message == "Group transaction created successfully! Per person: ₹100"


def test_group_detail_not_found(sc, backend):
    backend.on("GET", "/group-transactions", lambda r: _ok([]))
    _login(sc)
    assert group_khaata.group_transaction_detail(sc, "missing") is None
    assert sc.toaster.last.message == "Transaction not found"


# --------------- Mess ---------------
def test_mess_uses_signed_in_user_id(sc, backend):
    backend.on("GET", "/mess/user/u1", lambda r: _ok({"records": [
        {"_id": "m1", "date": "2024-05-01T00:00:00Z", "mealType": "Dinner", "price": 80}
    ]}))
    _login(sc)
    records = mess.list_records(sc)
    assert records[0].meal_type == "Dinner"


def test_mess_add_rejects_zero_price(sc, backend):
    _login(sc)
    before = len(backend.requests)
    assert mess.add_record(sc, "2024-05-01", "Lunch", 0) is None
    assert sc.toaster.last.message == "Please enter a valid price"
    assert len(backend.requests) == before


# --------------- Reports / settings ---------------
def test_contact_report_written_with_safe_filename(sc, backend, tmp_path):
    backend.on("GET", "/contacts/c1", lambda r: _ok({"_id": "c1", "name": "Ravi  Kumar", "phone": "9876543210"}))
    backend.on("GET", "/reports/contact/c1", lambda r: httpx.Response(200, content=b"%PDF-1.4"))
    _login(sc)
    path = reports.export_contact_report(sc, "c1", directory=tmp_path)
    assert path == tmp_path / "Ravi_Kumar_transactions.pdf"
    assert path.read_bytes() == b"%PDF-1.4"
    assert sc.toaster.last.message == f"File saved to: {path}"


def test_user_report_filename(sc, backend, tmp_path):
    backend.on("GET", "/reports/user", lambda r: httpx.Response(200, content=b"a,b\n"))
    _login(sc)
    path = reports.export_user_report(sc, format="csv", directory=tmp_path)
    assert path.name == "Ada_Lovelace_all_transactions.csv"


def test_backup_writes_dated_json(sc, backend, tmp_path):
    backend.on("GET", "/auth/backup-data", lambda r: httpx.Response(200, json={"contacts": [], "user": {"name": "Ada"}}))
    _login(sc)
    path = settings.backup_data(sc, directory=tmp_path)
    assert path.name == f"khaata_backup_{dt.date.today().isoformat()}.json"
    assert json.loads(path.read_text(encoding="utf-8"))["user"]["name"] == "Ada"
    assert sc.toaster.last.message == "Backup created and ready to save!"


def test_enabling_biometric_requires_available_sensor(sc, store):
    _login(sc)
    assert settings.set_biometric(sc, True) is False
    assert sc.toaster.last.message == "Biometric authentication is not available on this device"
    assert store.get_item("biometric_enabled") is None


def test_enabling_biometric_after_successful_check(sc, store):
    class _Sensor:
        def has_hardware(self) -> bool:
            return True

        def is_enrolled(self) -> bool:
            return True

        def authenticate(self, **_kwargs) -> AuthenticationOutcome:
            return AuthenticationOutcome(success=True)

    _login(sc)
    sc.gate = BiometricGate(store, _Sensor())
    assert settings.set_biometric(sc, True) is True
    assert store.get_item("biometric_enabled") == "true"
    assert sc.toaster.last.message == "Biometric authentication enabled"


def test_delete_account_logs_out(sc, backend):
    backend.on("DELETE", "/auth/delete-account", lambda r: _ok(message="Account deleted"))
    _login(sc)
    assert settings.delete_account(sc) is True
    assert sc.auth.session is None
    assert sc.toaster.last.message == "Account deleted successfully"


class _CountingSensor:
    def __init__(self) -> None:
        self.prompts = 0

    def has_hardware(self) -> bool:
        return True

    def is_enrolled(self) -> bool:
        return True

    def authenticate(self, **_kwargs) -> AuthenticationOutcome:
        self.prompts += 1
        return AuthenticationOutcome(success=True)


def test_biometric_prompt_runs_once_per_session(sc, backend, store):
    backend.on("GET", "/contacts", lambda r: _ok([{"_id": "c1", "name": "Ravi", "phone": "9876543210", "balance": 5}]))
    backend.on("GET", "/transactions/summary/monthly", lambda r: _ok([]))
    backend.on("GET", "/contacts/summary/buckets", lambda r: _ok({"buckets": []}))
    sensor = _CountingSensor()
    sc.gate = BiometricGate(store, sensor)
    store.set_item("biometric_enabled", "true")
    _login(sc)

    dashboard.load_dashboard(sc)
    assert sensor.prompts == 1
    contacts.list_contacts(sc)
    assert sensor.prompts == 1

    account.logout(sc)
    _login(sc)
    contacts.list_contacts(sc)
    assert sensor.prompts == 2
