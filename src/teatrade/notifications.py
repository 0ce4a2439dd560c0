"""Toast-style notifications raised by controller actions."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal, Protocol

logger = logging.getLogger(__name__)

Level = Literal["success", "info", "warning", "error"]


class Notifier(Protocol):
    def success(self, message: str, description: str | None = None) -> None: ...

    def info(self, message: str, description: str | None = None) -> None: ...

    def warning(self, message: str, description: str | None = None) -> None: ...

    def error(self, message: str, description: str | None = None) -> None: ...


@dataclass(frozen=True)
class Toast:
    level: Level
    message: str
    description: str | None = None


@dataclass
class ToastLog:
    """In-memory :class:`Notifier` that records every toast in order."""

    toasts: list[Toast] = field(default_factory=list)

    def _push(self, level: Level, message: str, description: str | None) -> None:
        self.toasts.append(Toast(level, message, description))
        log_level = logging.WARNING if level in ("warning", "error") else logging.INFO
        logger.log(log_level, "toast[%s] %s", level, message)

    def success(self, message: str, description: str | None = None) -> None:
        self._push("success", message, description)

    def info(self, message: str, description: str | None = None) -> None:
        self._push("info", message, description)

    def warning(self, message: str, description: str | None = None) -> None:
        self._push("warning", message, description)

    def error(self, message: str, description: str | None = None) -> None:
        self._push("error", message, description)

    def messages(self, level: Level | None = None) -> list[str]:
        return [toast.message for toast in self.toasts if level is None or toast.level == level]

    @property
    def last(self) -> Toast | None:
        return self.toasts[-1] if self.toasts else None

    def clear(self) -> None:
        self.toasts.clear()


__all__ = ["Notifier", "Toast", "ToastLog"]
