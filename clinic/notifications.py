"""
Relay delle notifiche transitorie (toast).

Il chiamante non attende conferme: `NotificationRelay.announce` non solleva
mai eccezioni, un errore del sink viene loggato e scartato.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


class Severity(str, enum.Enum):
    NORMAL = "normal"
    DESTRUCTIVE = "destructive"


@dataclass(frozen=True)
class Announcement:
    title: str
    description: str
    severity: Severity = Severity.NORMAL


class NotificationSink(Protocol):
    def announce(self, title: str, description: str, severity: Severity) -> None: ...


class NullSink:
    def announce(self, title: str, description: str, severity: Severity) -> None:
        pass


class MemorySink:
    """Tiene in memoria gli annunci (test, anteprime)."""

    def __init__(self) -> None:
        self.items: list[Announcement] = []

    def announce(self, title: str, description: str, severity: Severity) -> None:
        self.items.append(Announcement(title, description, severity))

    def by_severity(self, severity: Severity) -> list[Announcement]:
        return [a for a in self.items if a.severity == severity]


class PrintSink:
    def announce(self, title: str, description: str, severity: Severity) -> None:
        prefix = "ERRORE" if severity == Severity.DESTRUCTIVE else "OK"
        print(f"[{prefix}] {title}: {description}")


class NotificationRelay:
    def __init__(self, sink: NotificationSink | None = None) -> None:
        self.sink = sink or NullSink()

    def announce(self, title: str, description: str, severity: Severity = Severity.NORMAL) -> None:
        try:
            self.sink.announce(title, description, Severity(severity))
        except Exception:
            logger.exception("Notifica non consegnata: %s", title)

    def success(self, title: str, description: str) -> None:
        self.announce(title, description, Severity.NORMAL)

    def failure(self, title: str, description: str) -> None:
        self.announce(title, description, Severity.DESTRUCTIVE)
