from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from common.entities import BalanceBucket, Contact, MonthlySummary

from .base import ScreenContext, call_api


@dataclass
class ContactTotals:
    """Receivable/payable split of contact balances.

    A positive balance means the contact owes the user; a negative one means
    the user owes the contact.
    """

    total_contacts: int = 0
    receivables: float = 0.0
    payables: float = 0.0
    contacts_owing: int = 0
    contacts_you_owe: int = 0
    top_owing: List[Tuple[str, float]] = field(default_factory=list)


@dataclass
class DashboardData:
    totals: ContactTotals
    monthly: List[MonthlySummary]
    buckets: List[BalanceBucket]


def summarize_contacts(contacts: List[Contact], *, top: int = 5) -> ContactTotals:
    totals = ContactTotals(total_contacts=len(contacts))
    owing: List[Tuple[str, float]] = []
    for c in contacts:
        bal = float(c.balance or 0)
        if bal > 0:
            totals.receivables += bal
            totals.contacts_owing += 1
            owing.append((c.name, bal))
        elif bal < 0:
            totals.payables += abs(bal)
            totals.contacts_you_owe += 1
    owing.sort(key=lambda x: x[1], reverse=True)
    totals.top_owing = owing[:top]
    return totals


def load_dashboard(sc: ScreenContext) -> Optional[DashboardData]:
    contacts = call_api(
        sc,
        lambda s: sc.client.list_contacts(s.token),
        fallback="Failed to load dashboard",
    )
    if contacts is None:
        return None
    # Charts are optional; their failures are toasted but do not hide totals
    monthly = call_api(sc, lambda s: sc.client.monthly_summary(s.token), fallback="Failed to load monthly summary")
    buckets = call_api(sc, lambda s: sc.client.balance_buckets(s.token), fallback="Failed to load balance buckets")
    return DashboardData(
        totals=summarize_contacts(contacts),
        monthly=monthly or [],
        buckets=buckets or [],
    )


__all__ = ["ContactTotals", "DashboardData", "load_dashboard", "summarize_contacts"]
