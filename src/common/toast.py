from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Literal, Optional

from rich.console import Console


logger = logging.getLogger(__name__)

ToastType = Literal["success", "error", "info"]

_STYLES = {
    "success": ("✅", "green"),
    "error": ("❌", "red"),
    "info": ("ℹ️", "blue"),
}


@dataclass(frozen=True)
class Toast:
    type: ToastType
    title: str
    message: Optional[str] = None

    def render(self) -> str:
        icon, color = _STYLES[self.type]
        text = f"{icon} [bold {color}]{self.title}[/bold {color}]"
        if self.message:
            text += f" {self.message}"
        return text


class Toaster:
    """
    Transient success/error/info notifications printed to a rich console.

    Every toast shown is also kept in `history` so callers (and tests) can
    inspect the feedback a screen produced.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self._console = console or Console(stderr=True)
        self.history: List[Toast] = []

    @property
    def last(self) -> Optional[Toast]:
        return self.history[-1] if self.history else None

    def show(self, type: ToastType, title: str, message: Optional[str] = None) -> Toast:
        toast = Toast(type=type, title=title, message=message)
        self.history.append(toast)
        if type == "error":
            logger.info("toast error: %s %s", title, message or "")
        self._console.print(toast.render())
        return toast

    def success(self, message: str, title: str = "Success") -> Toast:
        return self.show("success", title, message)

    def error(self, message: str, title: str = "Error") -> Toast:
        return self.show("error", title, message)

    def info(self, message: str, title: str = "Info") -> Toast:
        return self.show("info", title, message)


__all__ = ["Toast", "Toaster", "ToastType"]
