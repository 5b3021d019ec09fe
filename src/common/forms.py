"""
Form schemas for every screen that accepts user input.

Validation is declarative (pydantic); the error strings are shown to the user
as-is, so each rule carries its own message. `validate_form` flattens a
pydantic ValidationError into `{field: first message}`.
"""

from __future__ import annotations

import datetime as dt
import re
from typing import Any, ClassVar, Dict, List, Literal, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator, model_validator


_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# pydantic error types for input that is not a usable (finite) number
_NUMBER_ERRORS = frozenset(
    {"float_parsing", "float_type", "finite_number", "int_parsing", "int_type", "int_from_float"}
)

F = TypeVar("F", bound="_Form")


def _text(v: Any) -> str:
    return "" if v is None else str(v)


def _check_email(v: str) -> str:
    if not _EMAIL_RE.match(v):
        raise ValueError("Please enter a valid email")
    return v.lower()


def _check_length(v: str, *, low: int, high: int, what: str) -> str:
    if len(v) < low:
        raise ValueError(f"{what} must be at least {low} characters")
    if len(v) > high:
        raise ValueError(f"{what} cannot exceed {high} characters")
    return v


class _Form(BaseModel):
    # NaN and infinity never reach the API
    model_config = ConfigDict(allow_inf_nan=False)

    # Message used when a field is absent or blank
    required_messages: ClassVar[Dict[str, str]] = {}
    # Message used when a numeric field cannot be read as a finite number
    number_messages: ClassVar[Dict[str, str]] = {}

    @model_validator(mode="before")
    @classmethod
    def _reject_blank_required(cls, values: Any) -> Any:
        if not isinstance(values, Mapping):
            return values
        for name in cls.required_messages:
            if name not in values and not cls.model_fields[name].is_required():
                continue
            raw = values.get(name)
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                raise ValueError(f"{name}::{cls.required_messages[name]}")
        return values


class LoginForm(_Form):
    required_messages: ClassVar[Dict[str, str]] = {
        "email": "Email is required",
        "password": "Password is required",
    }

    email: str
    password: str

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v: Any) -> str:
        return _check_email(_text(v).strip())


class RegisterForm(_Form):
    required_messages: ClassVar[Dict[str, str]] = {
        "name": "Name is required",
        "email": "Email is required",
        "password": "Password is required",
        "confirm_password": "Please confirm your password",
    }

    name: str
    email: str
    password: str
    confirm_password: str

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v: Any) -> str:
        return _check_length(_text(v).strip(), low=2, high=50, what="Name")

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v: Any) -> str:
        return _check_email(_text(v).strip())

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v

    @field_validator("confirm_password")
    @classmethod
    def _confirm(cls, v: str, info: ValidationInfo) -> str:
        if v != info.data.get("password"):
            raise ValueError("Passwords must match")
        return v


class SignupOtpForm(_Form):
    required_messages: ClassVar[Dict[str, str]] = {
        "email": "Missing email for verification",
        "otp": "Enter the 6-digit code sent to your email",
    }

    email: str
    otp: str

    @field_validator("otp", mode="before")
    @classmethod
    def _otp(cls, v: Any) -> str:
        code = _text(v).strip()
        if len(code) < 4:
            raise ValueError("Enter the 6-digit code sent to your email")
        return code


class ChangePasswordForm(_Form):
    required_messages: ClassVar[Dict[str, str]] = {
        "current_password": "Current password is required",
        "new_password": "New password is required",
        "confirm_new_password": "Please confirm your new password",
    }

    current_password: str
    new_password: str
    confirm_new_password: str

    @field_validator("new_password")
    @classmethod
    def _new(cls, v: str) -> str:
        if len(v) < 6:
            raise ValueError("New password must be at least 6 characters")
        return v

    @field_validator("confirm_new_password")
    @classmethod
    def _confirm(cls, v: str, info: ValidationInfo) -> str:
        if v != info.data.get("new_password"):
            raise ValueError("Passwords must match")
        return v


class ContactForm(_Form):
    required_messages: ClassVar[Dict[str, str]] = {
        "name": "Name is required",
        "phone": "Phone number is required",
    }

    name: str
    email: Optional[str] = None
    phone: str

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, v: Any) -> str:
        return _check_length(_text(v).strip(), low=2, high=50, what="Name")

    @field_validator("email", mode="before")
    @classmethod
    def _email(cls, v: Any) -> Optional[str]:
        s = _text(v).strip()
        return _check_email(s) if s else None

    @field_validator("phone", mode="before")
    @classmethod
    def _phone(cls, v: Any) -> str:
        s = _text(v).strip()
        if len(s) < 10:
            raise ValueError("Phone number must be at least 10 digits")
        if len(s) > 15:
            raise ValueError("Phone number cannot exceed 15 digits")
        return s


class ContactTransactionForm(_Form):
    required_messages: ClassVar[Dict[str, str]] = {
        "amount": "Please enter a valid amount",
        "payer": "Payer must be either USER or FRIEND",
    }
    number_messages: ClassVar[Dict[str, str]] = {"amount": "Please enter a valid amount"}

    amount: float
    payer: Literal["USER", "FRIEND"]
    note: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def _amount(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Amount must be a positive number greater than 0")
        return v

    @field_validator("payer", mode="before")
    @classmethod
    def _payer(cls, v: Any) -> str:
        s = _text(v).strip().upper()
        if s not in ("USER", "FRIEND"):
            raise ValueError("Payer must be either USER or FRIEND")
        return s

    @field_validator("note", mode="before")
    @classmethod
    def _note(cls, v: Any) -> Optional[str]:
        s = _text(v).strip()
        if len(s) > 200:
            raise ValueError("Note cannot exceed 200 characters")
        return s or None


class PersonalTransactionForm(_Form):
    required_messages: ClassVar[Dict[str, str]] = {
        "amount": "Please enter a valid amount",
        "type": "Type must be INCOME or EXPENSE",
    }
    number_messages: ClassVar[Dict[str, str]] = {"amount": "Please enter a valid amount"}

    amount: float
    type: Literal["INCOME", "EXPENSE"]
    category: str = ""
    description: str = ""
    date: Optional[dt.date] = None

    @field_validator("amount")
    @classmethod
    def _amount(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Amount must be a positive number")
        return v

    @field_validator("type", mode="before")
    @classmethod
    def _type(cls, v: Any) -> str:
        s = _text(v).strip().upper()
        if s not in ("INCOME", "EXPENSE"):
            raise ValueError("Type must be INCOME or EXPENSE")
        return s

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, v: Any) -> str:
        s = _text(v).strip()
        if len(s) > 50:
            raise ValueError("Category cannot exceed 50 characters")
        return s

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v: Any) -> str:
        s = _text(v).strip()
        if len(s) > 200:
            raise ValueError("Description cannot exceed 200 characters")
        return s

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"amount": self.amount, "type": self.type}
        if self.category:
            body["category"] = self.category
        if self.description:
            body["description"] = self.description
        if self.date is not None:
            body["date"] = self.date.isoformat()
        return body


class GroupTransactionForm(_Form):
    required_messages: ClassVar[Dict[str, str]] = {
        "payer_id": "Please select who paid",
        "total_amount": "Please enter a valid total amount",
        "description": "Please enter a description",
    }
    number_messages: ClassVar[Dict[str, str]] = {
        "total_amount": "Please enter a valid total amount",
        "individual_amounts": "Please enter a valid amount for each contact",
        "user_amount": "Please enter a valid amount for your share",
    }

    payer_id: str = "USER"
    contact_ids: List[str] = Field(default_factory=list, validate_default=True)
    total_amount: float
    description: str
    split_mode: Literal["equal", "manual"] = "equal"
    individual_amounts: Dict[str, float] = Field(default_factory=dict)
    user_amount: float = 0.0

    @field_validator("contact_ids")
    @classmethod
    def _contacts(cls, v: List[str]) -> List[str]:
        ids = [c.strip() for c in v if c and c.strip()]
        if not ids:
            raise ValueError("Please select at least 1 contact for group transaction")
        # Dedup while preserving order
        return list(dict.fromkeys(ids))

    @field_validator("total_amount")
    @classmethod
    def _total(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Please enter a valid total amount")
        return v

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v: Any) -> str:
        s = _text(v).strip()
        if len(s) > 200:
            raise ValueError("Description cannot exceed 200 characters")
        return s

    @model_validator(mode="after")
    def _manual_split_adds_up(self) -> "GroupTransactionForm":
        if self.split_mode != "manual":
            return self
        manual_total = self.manual_total()
        if abs(manual_total - self.total_amount) >= 0.01:
            raise ValueError(
                f"individual_amounts::Manual amounts total (₹{manual_total:.2f}) "
                f"must equal the total amount (₹{self.total_amount:g})"
            )
        return self

    def manual_total(self) -> float:
        return sum(self.individual_amounts.get(c, 0.0) for c in self.contact_ids) + self.user_amount

    def per_person_share(self) -> float:
        # Equal split includes the signed-in user
        return round(self.total_amount / (len(self.contact_ids) + 1), 2)

    def to_payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "payerId": self.payer_id,
            "contactIds": list(self.contact_ids),
            "totalAmount": self.total_amount,
            "description": self.description,
            "splitMode": self.split_mode,
        }
        if self.split_mode == "manual":
            body["individualAmounts"] = {c: self.individual_amounts.get(c, 0.0) for c in self.contact_ids}
            body["userAmount"] = self.user_amount
        return body


class MessRecordForm(_Form):
    required_messages: ClassVar[Dict[str, str]] = {
        "date": "Please fill in all fields",
        "meal_type": "Please fill in all fields",
        "price": "Please fill in all fields",
    }
    number_messages: ClassVar[Dict[str, str]] = {
        "price": "Please enter a valid price",
        "person_count": "Person count must be a positive integer",
    }

    date: dt.date
    meal_type: Literal["Breakfast", "Lunch", "Dinner"]
    price: float
    person_count: int = 1

    @field_validator("meal_type", mode="before")
    @classmethod
    def _meal(cls, v: Any) -> str:
        s = _text(v).strip().capitalize()
        if s not in ("Breakfast", "Lunch", "Dinner"):
            raise ValueError("Meal type must be Breakfast, Lunch, or Dinner")
        return s

    @field_validator("price")
    @classmethod
    def _price(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Please enter a valid price")
        return v

    @field_validator("person_count")
    @classmethod
    def _persons(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Person count must be a positive integer")
        return v


def _field_and_message(err: Dict[str, Any]) -> Tuple[str, str]:
    loc = err.get("loc") or ()
    field = str(loc[0]) if loc else "__all__"
    msg = str(err.get("msg", "Invalid value"))
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    # Model-level validators encode the target field as "field::message"
    if "::" in msg:
        field, msg = msg.split("::", 1)
    return field, msg


def validate_form(schema: Type[F], values: Mapping[str, Any]) -> Tuple[Optional[F], Optional[Dict[str, str]]]:
    """Validate `values` against `schema`.

    Returns `(form, None)` on success or `(None, {field: message})`, keeping the
    first message reported for each field.
    """
    try:
        return schema.model_validate(dict(values)), None
    except ValidationError as ve:
        errors: Dict[str, str] = {}
        for err in ve.errors():
            field, msg = _field_and_message(err)
            kind = err.get("type")
            if kind == "missing" and field in schema.required_messages:
                msg = schema.required_messages[field]
            elif kind in _NUMBER_ERRORS and field in schema.number_messages:
                msg = schema.number_messages[field]
            errors.setdefault(field, msg)
        return None, errors


def first_error(errors: Mapping[str, str]) -> str:
    return next(iter(errors.values()), "Invalid input")


__all__ = [
    "ChangePasswordForm",
    "ContactForm",
    "ContactTransactionForm",
    "GroupTransactionForm",
    "LoginForm",
    "MessRecordForm",
    "PersonalTransactionForm",
    "RegisterForm",
    "SignupOtpForm",
    "first_error",
    "validate_form",
]
