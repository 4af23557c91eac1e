from __future__ import annotations

import sys
from typing import Protocol, TextIO

from .models import Notification

SUCCESS = "success"
ERROR = "error"


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None: ...


class ConsoleNotifier:
    """Prints notifications; errors go to stderr."""

    def __init__(self, out: TextIO | None = None, err: TextIO | None = None) -> None:
        self.out = out
        self.err = err

    def notify(self, notification: Notification) -> None:
        if notification.variant == ERROR:
            stream = self.err or sys.stderr
        else:
            stream = self.out or sys.stdout
        print(f"{notification.title}: {notification.message}", file=stream)


def show_toast(notifier: Notifier, title: str, message: str, variant: str) -> None:
    notifier.notify(Notification(title=title, message=message, variant=variant))
