from __future__ import annotations

import datetime as dt

import pytest

from common.forms import (
    ChangePasswordForm,
    ContactForm,
    ContactTransactionForm,
    GroupTransactionForm,
    LoginForm,
    MessRecordForm,
    PersonalTransactionForm,
    RegisterForm,
    SignupOtpForm,
    first_error,
    validate_form,
)


def test_login_reports_first_missing_field():
    form, errors = validate_form(LoginForm, {"email": "", "password": ""})
    assert form is None
    assert errors == {"email": "Email is required"}


def test_login_lowercases_email_and_rejects_garbage():
    form, errors = validate_form(LoginForm, {"email": " Ada@Example.COM ", "password": "pw"})
    assert errors is None
    assert form.email == "ada@example.com"

    _, errors = validate_form(LoginForm, {"email": "not-an-email", "password": "pw"})
    assert errors == {"email": "Please enter a valid email"}


@pytest.mark.parametrize(
    "values, field, message",
    [
        ({"name": "A", "email": "a@x.io", "password": "secret1", "confirm_password": "secret1"}, "name",
         "Name must be at least 2 characters"),
        ({"name": "Ada", "email": "a@x.io", "password": "123", "confirm_password": "123"}, "password",
         "Password must be at least 6 characters"),
        ({"name": "Ada", "email": "a@x.io", "password": "secret1", "confirm_password": "secret2"}, "confirm_password",
         "Passwords must match"),
    ],
)
def test_register_rules(values, field, message):
    _, errors = validate_form(RegisterForm, values)
    assert errors[field] == message


def test_otp_is_trimmed_and_needs_four_chars():
    form, _ = validate_form(SignupOtpForm, {"email": "a@x.io", "otp": " 123456 "})
    assert form.otp == "123456"
    _, errors = validate_form(SignupOtpForm, {"email": "a@x.io", "otp": "12"})
    assert errors == {"otp": "Enter the 6-digit code sent to your email"}
    _, errors = validate_form(SignupOtpForm, {"email": "", "otp": "123456"})
    assert first_error(errors) == "Missing email for verification"


def test_change_password_confirmation():
    _, errors = validate_form(
        ChangePasswordForm,
        {"current_password": "old", "new_password": "newpass", "confirm_new_password": "other"},
    )
    assert errors == {"confirm_new_password": "Passwords must match"}


def test_contact_phone_bounds_and_optional_email():
    form, errors = validate_form(ContactForm, {"name": "Ravi", "phone": "9876543210", "email": ""})
    assert errors is None
    assert form.email is None

    _, errors = validate_form(ContactForm, {"name": "Ravi", "phone": "12345"})
    assert errors == {"phone": "Phone number must be at least 10 digits"}
    _, errors = validate_form(ContactForm, {"name": "Ravi", "phone": "1" * 16})
    assert errors == {"phone": "Phone number cannot exceed 15 digits"}


def test_contact_transaction_amount_and_payer():
    form, _ = validate_form(ContactTransactionForm, {"amount": "250", "payer": "friend", "note": "  "})
    assert form.amount == 250.0
    assert form.payer == "FRIEND"
    assert form.note is None

    _, errors = validate_form(ContactTransactionForm, {"amount": 0, "payer": "USER"})
    assert errors == {"amount": "Amount must be a positive number greater than 0"}
    _, errors = validate_form(ContactTransactionForm, {"amount": 5, "payer": "BOSS"})
    assert errors == {"payer": "Payer must be either USER or FRIEND"}


def test_personal_transaction_payload():
    form, _ = validate_form(
        PersonalTransactionForm,
        {"amount": 99.5, "type": "expense", "category": "Food", "date": "2024-05-01"},
    )
    assert form.to_payload() == {"amount": 99.5, "type": "EXPENSE", "category": "Food", "date": "2024-05-01"}


def test_group_equal_split_and_payload():
    form, errors = validate_form(
        GroupTransactionForm,
        {"contact_ids": ["c1", "c2", "c1"], "total_amount": 300, "description": "Dinner"},
    )
    assert errors is None
    assert form.contact_ids == ["c1", "c2"]
    assert form.per_person_share() == 100.0
    payload = form.to_payload()
    assert payload["payerId"] == "USER"
    assert payload["splitMode"] == "equal"
    assert "individualAmounts" not in payload


def test_group_requires_a_contact():
    _, errors = validate_form(GroupTransactionForm, {"total_amount": 300, "description": "Dinner"})
    assert errors == {"contact_ids": "Please select at least 1 contact for group transaction"}


def test_group_manual_split_must_add_up():
    values = {
        "contact_ids": ["c1", "c2"],
        "total_amount": 300,
        "description": "Dinner",
        "split_mode": "manual",
        "individual_amounts": {"c1": 100, "c2": 100},
        "user_amount": 50,
    }
    _, errors = validate_form(GroupTransactionForm, values)
    assert errors == {"individual_amounts": "Manual amounts total (₹250.00) must equal the total amount (₹300)"}

    values["user_amount"] = 100
    form, errors = validate_form(GroupTransactionForm, values)
    assert errors is None
    assert form.to_payload()["individualAmounts"] == {"c1": 100.0, "c2": 100.0}
    assert form.to_payload()["userAmount"] == 100.0


def test_mess_record_rules():
    form, _ = validate_form(MessRecordForm, {"date": "2024-05-01", "meal_type": "lunch", "price": 60})
    assert form.date == dt.date(2024, 5, 1)
    assert form.meal_type == "Lunch"
    assert form.person_count == 1

    _, errors = validate_form(MessRecordForm, {"date": "2024-05-01", "meal_type": "Lunch", "price": 0})
    assert errors == {"price": "Please enter a valid price"}
    _, errors = validate_form(MessRecordForm, {"date": "", "meal_type": "Lunch", "price": 10})
    assert first_error(errors) == "Please fill in all fields"


_MONEY_FIELDS = [
    (ContactTransactionForm, {"payer": "USER"}, "amount", "Please enter a valid amount"),
    (PersonalTransactionForm, {"type": "EXPENSE"}, "amount", "Please enter a valid amount"),
    (GroupTransactionForm, {"contact_ids": ["c1"], "description": "Dinner"}, "total_amount",
     "Please enter a valid total amount"),
    (MessRecordForm, {"date": "2024-05-01", "meal_type": "Lunch"}, "price", "Please enter a valid price"),
]


@pytest.mark.parametrize("raw", ["nan", "inf", "-inf", float("nan"), "abc"])
@pytest.mark.parametrize("schema, base, field, message", _MONEY_FIELDS)
def test_money_fields_reject_non_finite_and_non_numeric(schema, base, field, message, raw):
    form, errors = validate_form(schema, {**base, field: raw})
    assert form is None
    assert errors[field] == message


def test_manual_split_amounts_must_be_numbers():
    _, errors = validate_form(
        GroupTransactionForm,
        {
            "contact_ids": ["c1"],
            "total_amount": 100,
            "description": "Cab",
            "split_mode": "manual",
            "individual_amounts": {"c1": "nan"},
            "user_amount": 50,
        },
    )
    assert errors["individual_amounts"] == "Please enter a valid amount for each contact"


def test_group_payer_cannot_be_blank():
    _, errors = validate_form(
        GroupTransactionForm,
        {"payer_id": "  ", "contact_ids": ["c1"], "total_amount": 100, "description": "Cab"},
    )
    assert errors == {"payer_id": "Please select who paid"}
