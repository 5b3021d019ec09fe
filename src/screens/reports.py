from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from common.entities import ReportFile

from .base import ScreenContext, call_api


logger = logging.getLogger(__name__)

FORMATS = ("pdf", "csv")

_WHITESPACE_RE = re.compile(r"\s+")


def report_filename(name: str, format: str, *, all_transactions: bool = False) -> str:
    """`Jane Doe` + pdf -> `Jane_Doe_transactions.pdf` (or `..._all_transactions.pdf`)."""
    stem = _WHITESPACE_RE.sub("_", name.strip()) or "khaata"
    suffix = "all_transactions" if all_transactions else "transactions"
    return f"{stem}_{suffix}.{format}"


def _save(sc: ScreenContext, report: ReportFile, target: Path, fallback: str) -> Optional[Path]:
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(report.content)
    except OSError:
        logger.exception("Could not write report to %s", target)
        sc.toaster.error(fallback)
        return None
    sc.toaster.success(f"File saved to: {target}")
    return target


def export_contact_report(
    sc: ScreenContext,
    contact_id: str,
    *,
    format: str = "pdf",
    directory: Path = Path("."),
    contact_name: Optional[str] = None,
) -> Optional[Path]:
    fallback = "Failed to export transactions"
    if format not in FORMATS:
        sc.toaster.error(f"Unsupported format: {format}")
        return None
    if contact_name is None:
        contact = call_api(sc, lambda s: sc.client.get_contact(s.token, contact_id), fallback=fallback)
        if contact is None:
            return None
        contact_name = contact.name
    report = call_api(
        sc,
        lambda s: sc.client.export_contact_report(s.token, contact_id, format=format),
        fallback=fallback,
    )
    if report is None:
        return None
    return _save(sc, report, directory / report_filename(contact_name, format), fallback)


def export_user_report(sc: ScreenContext, *, format: str = "pdf", directory: Path = Path(".")) -> Optional[Path]:
    fallback = "Failed to export all transactions"
    if format not in FORMATS:
        sc.toaster.error(f"Unsupported format: {format}")
        return None
    session = sc.session()
    report = call_api(
        sc,
        lambda s: sc.client.export_user_report(s.token, format=format),
        fallback=fallback,
    )
    if report is None:
        return None
    filename = report_filename(session.user.name, format, all_transactions=True)
    return _save(sc, report, directory / filename, fallback)


__all__ = ["FORMATS", "export_contact_report", "export_user_report", "report_filename"]
