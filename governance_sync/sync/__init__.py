"""Event reconciliation and the connection-scoped context."""

from .context import DecodedWeight, LedgerContext
from .notifications import (
    ConsoleNotifier,
    LoggingNotifier,
    Notification,
    NotificationDispatcher,
    NotificationKind,
)
from .reconciler import EventReconciler, ReconcilerState

__all__ = [
    "LedgerContext",
    "DecodedWeight",
    "EventReconciler",
    "ReconcilerState",
    "Notification",
    "NotificationKind",
    "NotificationDispatcher",
    "LoggingNotifier",
    "ConsoleNotifier",
]
