# src/compliance_pipeline/core/notifications/__init__.py
"""
Política de notificação do pipeline.

O core decide se um desfecho vira notificação; a entrega é do sink.
"""

from .events import (
    InMemoryNotificationSink,
    NotificationContext,
    NotificationEvent,
    NotificationKind,
    NotificationSink,
    Priority,
)
from .policy import NotificationPolicy

__all__ = [
    "InMemoryNotificationSink",
    "NotificationContext",
    "NotificationEvent",
    "NotificationKind",
    "NotificationSink",
    "Priority",
    "NotificationPolicy",
]
