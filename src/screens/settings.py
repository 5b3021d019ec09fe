from __future__ import annotations

import datetime as dt
import json
import logging
from pathlib import Path
from typing import Optional

from .base import ScreenContext, call_api


logger = logging.getLogger(__name__)

NOT_AVAILABLE = "Biometric authentication is not available on this device"


def backup_filename(today: Optional[dt.date] = None) -> str:
    return f"khaata_backup_{(today or dt.date.today()).isoformat()}.json"


def set_biometric(sc: ScreenContext, enabled: bool) -> bool:
    """Turn the biometric lock on or off. Enabling needs one successful check."""
    sc.session()
    gate = sc.gate
    if gate is None or (enabled and not gate.is_available()):
        sc.toaster.error(NOT_AVAILABLE)
        return False
    if enabled:
        result = gate.authenticate()
        if not result.success:
            sc.toaster.error(result.error or "Biometric authentication failed")
            return False
    try:
        gate.set_preference(enabled)
    except (ValueError, OSError):
        sc.toaster.error("Failed to update biometric settings")
        return False
    sc.toaster.success(f"Biometric authentication {'enabled' if enabled else 'disabled'}")
    return True


def backup_data(sc: ScreenContext, *, directory: Path = Path(".")) -> Optional[Path]:
    fallback = "Failed to backup data. Please try again."
    document = call_api(sc, lambda s: sc.client.backup_data(s.token), fallback=fallback)
    if document is None:
        return None
    target = directory / backup_filename()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError:
        logger.exception("Could not write backup to %s", target)
        sc.toaster.error(fallback)
        return None
    sc.toaster.success("Backup created and ready to save!")
    return target


def delete_account(sc: ScreenContext) -> bool:
    sc.session()
    result = sc.auth.delete_account()
    if result.success:
        sc.toaster.success("Account deleted successfully")
        return True
    sc.toaster.error(result.message or "Failed to delete account")
    return False


__all__ = ["backup_data", "backup_filename", "delete_account", "set_biometric"]
