from __future__ import annotations

from typing import Any, Dict, List, Optional

from common.entities import GroupTransaction
from common.forms import GroupTransactionForm

from .base import ScreenContext, call_api, validated


def list_group_transactions(sc: ScreenContext) -> Optional[List[GroupTransaction]]:
    return call_api(
        sc,
        lambda s: sc.client.list_group_transactions(s.token),
        fallback="Failed to fetch group transactions",
    )


def _created_message(tx: GroupTransaction) -> str:
    share = tx.per_person_share if tx.per_person_share is not None else 0
    return f"Group transaction created successfully! Per person: ₹{share:g}"


def create_group_transaction(
    sc: ScreenContext,
    *,
    contact_ids: List[str],
    total_amount: Any,
    description: str,
    payer_id: str = "USER",
    split_mode: str = "equal",
    individual_amounts: Optional[Dict[str, float]] = None,
    user_amount: float = 0.0,
) -> Optional[GroupTransaction]:
    """
    Split one expense between the user and the selected contacts.

    Notes
    - `payer_id` is "USER" or the id of the contact who paid.
    - Equal split divides the total by contacts + 1 (the user's own share).
    - Manual split sends per-contact amounts plus the user's amount; they must
      add up to the total.
    """
    sc.session()
    form = validated(
        sc,
        GroupTransactionForm,
        {
            "payer_id": payer_id,
            "contact_ids": contact_ids,
            "total_amount": total_amount,
            "description": description,
            "split_mode": split_mode,
            "individual_amounts": individual_amounts or {},
            "user_amount": user_amount,
        },
    )
    if form is None:
        return None
    return call_api(
        sc,
        lambda s: sc.client.create_group_transaction(s.token, form.to_payload()),
        fallback="Failed to create group transaction",
        success=_created_message,
    )


def group_transaction_detail(sc: ScreenContext, transaction_id: str) -> Optional[GroupTransaction]:
    """There is no per-id endpoint; the entry is looked up in the listing."""
    transactions = list_group_transactions(sc)
    if transactions is None:
        return None
    for tx in transactions:
        if tx.id == transaction_id:
            return tx
    sc.toaster.error("Transaction not found")
    return None


__all__ = ["create_group_transaction", "group_transaction_detail", "list_group_transactions"]
