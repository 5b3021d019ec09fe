from __future__ import annotations

from typing import List, Optional

from common.entities import Notification

from .base import ScreenContext, call_api


def list_notifications(sc: ScreenContext) -> Optional[List[Notification]]:
    return call_api(
        sc,
        lambda s: sc.client.list_notifications(s.token),
        fallback="Failed to fetch notifications",
    )


__all__ = ["list_notifications"]
