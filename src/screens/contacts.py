from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from common.entities import Contact, LedgerTransaction
from common.forms import ContactForm, ContactTransactionForm

from .base import ScreenContext, call_api, validated


@dataclass(frozen=True)
class ContactDetail:
    contact: Contact
    transactions: List[LedgerTransaction]


def list_contacts(sc: ScreenContext, *, search: Optional[str] = None) -> Optional[List[Contact]]:
    contacts = call_api(
        sc,
        lambda s: sc.client.list_contacts(s.token),
        fallback="Failed to fetch contacts",
    )
    if contacts is None or not search:
        return contacts
    needle = search.strip().lower()
    return [
        c
        for c in contacts
        if needle in c.name.lower() or needle in c.phone or needle in (c.email or "").lower()
    ]


def add_contact(sc: ScreenContext, name: str, phone: str, email: Optional[str] = None) -> Optional[Contact]:
    sc.session()
    form = validated(sc, ContactForm, {"name": name, "phone": phone, "email": email})
    if form is None:
        return None
    return call_api(
        sc,
        lambda s: sc.client.create_contact(s.token, name=form.name, phone=form.phone, email=form.email),
        fallback="Failed to add contact. Please try again.",
        success="Contact added successfully!",
    )


def update_contact(
    sc: ScreenContext, contact_id: str, name: str, phone: str, email: Optional[str] = None
) -> Optional[Contact]:
    sc.session()
    form = validated(sc, ContactForm, {"name": name, "phone": phone, "email": email})
    if form is None:
        return None
    return call_api(
        sc,
        lambda s: sc.client.update_contact(s.token, contact_id, name=form.name, phone=form.phone, email=form.email),
        fallback="Failed to update contact",
        success="Contact updated successfully!",
    )


def delete_contact(sc: ScreenContext, contact_id: str) -> bool:
    message = call_api(
        sc,
        lambda s: sc.client.delete_contact(s.token, contact_id),
        fallback="Failed to delete contact",
        success=lambda m: m or "Contact deleted successfully",
    )
    return message is not None


def contact_detail(sc: ScreenContext, contact_id: str) -> Optional[ContactDetail]:
    if not contact_id:
        sc.toaster.error("Invalid contact ID")
        return None
    contact = call_api(
        sc,
        lambda s: sc.client.get_contact(s.token, contact_id),
        fallback="Failed to fetch contact details",
    )
    if contact is None:
        return None
    transactions = call_api(
        sc,
        lambda s: sc.client.list_transactions(s.token, contact_id=contact_id),
        fallback="Failed to fetch transactions",
    )
    return ContactDetail(contact=contact, transactions=transactions or [])


def add_transaction(
    sc: ScreenContext, contact_id: str, amount: float, payer: str, note: Optional[str] = None
) -> Optional[LedgerTransaction]:
    sc.session()
    form = validated(sc, ContactTransactionForm, {"amount": amount, "payer": payer, "note": note})
    if form is None:
        return None
    return call_api(
        sc,
        lambda s: sc.client.create_transaction(
            s.token, contact_id=contact_id, amount=form.amount, payer=form.payer, note=form.note
        ),
        fallback="Failed to add transaction. Please try again.",
        success="Transaction added successfully!",
    )


__all__ = [
    "ContactDetail",
    "add_contact",
    "add_transaction",
    "contact_detail",
    "delete_contact",
    "list_contacts",
    "update_contact",
]
