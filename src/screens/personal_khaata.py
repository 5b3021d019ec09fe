from __future__ import annotations

import datetime as dt
from typing import Any, Dict, Optional

from common.entities import PersonalLedger, PersonalTransaction
from common.forms import PersonalTransactionForm

from .base import ScreenContext, call_api, clean, validated


def list_transactions(
    sc: ScreenContext,
    *,
    type: Optional[str] = None,
    start_date: Optional[dt.date] = None,
    end_date: Optional[dt.date] = None,
) -> Optional[PersonalLedger]:
    kind = type.upper() if type else None
    return call_api(
        sc,
        lambda s: sc.client.list_personal_transactions(
            s.token, type=kind, start_date=start_date, end_date=end_date
        ),
        fallback="Failed to load transactions",
    )


def add_transaction(
    sc: ScreenContext,
    amount: Any,
    type: str,
    *,
    category: Optional[str] = None,
    description: Optional[str] = None,
    date: Optional[dt.date] = None,
) -> Optional[PersonalTransaction]:
    sc.session()
    values = clean(
        {"amount": amount, "type": type, "category": category, "description": description, "date": date}
    )
    form = validated(sc, PersonalTransactionForm, values)
    if form is None:
        return None
    return call_api(
        sc,
        lambda s: sc.client.add_personal_transaction(s.token, form.to_payload()),
        fallback="Failed to add transaction",
        success="Transaction added successfully!",
    )


def update_transaction(
    sc: ScreenContext,
    transaction_id: str,
    amount: Any,
    type: str,
    *,
    category: Optional[str] = None,
    description: Optional[str] = None,
    date: Optional[dt.date] = None,
) -> Optional[PersonalTransaction]:
    """Replace an entry. The full form is re-validated, as in the edit dialog."""
    sc.session()
    values: Dict[str, Any] = clean(
        {"amount": amount, "type": type, "category": category, "description": description, "date": date}
    )
    form = validated(sc, PersonalTransactionForm, values)
    if form is None:
        return None
    return call_api(
        sc,
        lambda s: sc.client.update_personal_transaction(s.token, transaction_id, form.to_payload()),
        fallback="Failed to update transaction",
        success="Transaction updated successfully!",
    )


def delete_transaction(sc: ScreenContext, transaction_id: str) -> bool:
    message = call_api(
        sc,
        lambda s: sc.client.delete_personal_transaction(s.token, transaction_id),
        fallback="Failed to delete transaction",
        success="Transaction deleted successfully!",
    )
    return message is not None


__all__ = ["add_transaction", "delete_transaction", "list_transactions", "update_transaction"]
