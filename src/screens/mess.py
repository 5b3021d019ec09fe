from __future__ import annotations

import datetime as dt
from typing import Any, List, Optional

from common.entities import MessMonth, MessRecord, MessReport
from common.forms import MessRecordForm

from .base import ScreenContext, call_api, validated


def list_records(sc: ScreenContext) -> Optional[List[MessRecord]]:
    return call_api(
        sc,
        lambda s: sc.client.list_mess_records(s.token, s.user.id),
        fallback="Failed to load records",
    )


def add_record(
    sc: ScreenContext, date: Any, meal_type: str, price: Any, person_count: Any = 1
) -> Optional[MessRecord]:
    sc.session()
    form = validated(
        sc,
        MessRecordForm,
        {"date": date, "meal_type": meal_type, "price": price, "person_count": person_count},
    )
    if form is None:
        return None
    return call_api(
        sc,
        lambda s: sc.client.add_mess_record(
            s.token,
            date=form.date,
            meal_type=form.meal_type,
            price=form.price,
            person_count=form.person_count,
        ),
        fallback="Failed to add record",
        success="Record added successfully!",
    )


def delete_record(sc: ScreenContext, record_id: str) -> bool:
    message = call_api(
        sc,
        lambda s: sc.client.delete_mess_record(s.token, record_id),
        fallback="Failed to delete record",
        success="Record deleted successfully!",
    )
    return message is not None


def available_months(sc: ScreenContext) -> Optional[List[MessMonth]]:
    return call_api(
        sc,
        lambda s: sc.client.mess_months(s.token, s.user.id),
        fallback="Failed to load available months",
    )


def monthly_report(sc: ScreenContext, *, year: int, month: int) -> Optional[MessReport]:
    if not 1 <= month <= 12:
        sc.toaster.error("Month must be between 1 and 12")
        return None
    return call_api(
        sc,
        lambda s: sc.client.mess_monthly(s.token, s.user.id, year=year, month=month),
        fallback="Failed to load monthly analytics",
    )


def date_range_report(sc: ScreenContext, *, start_date: dt.date, end_date: dt.date) -> Optional[MessReport]:
    if start_date > end_date:
        sc.toaster.error("Start date must be before end date")
        return None
    return call_api(
        sc,
        lambda s: sc.client.mess_date_range(s.token, s.user.id, start_date=start_date, end_date=end_date),
        fallback="Failed to load date range analytics",
    )


__all__ = [
    "add_record",
    "available_months",
    "date_range_report",
    "delete_record",
    "list_records",
    "monthly_report",
]
