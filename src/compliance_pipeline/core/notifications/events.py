# src/compliance_pipeline/core/notifications/events.py
"""
Eventos de notificação e contrato do sink externo.

O core decide *se* notifica; a entrega (persistência, e-mail, push) é
inteiramente do sink. O formato espelha o pedido de criação de
notificação do serviço original (`type`, `title`, `message`,
`product_id`, `product_name`, `step`, `priority`, `metadata`).

Limites explícitos:
    - Não entrega notificações
    - Não aplica retry: o sink recebe cada evento exatamente uma vez
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


class NotificationKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    UPDATE_CHANGE = "update_change"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class NotificationEvent:
    """Pedido de notificação imutável entregue ao sink."""
    type: NotificationKind
    title: str
    message: str
    product_id: str
    product_name: str
    step: int
    priority: Priority = Priority.MEDIUM
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "step": self.step,
            "priority": self.priority.value,
            "metadata": dict(self.metadata),
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class NotificationContext:
    """Contexto de produto/etapa anexado a todo evento."""
    product_id: str
    step: int
    product_name: str = ""


@runtime_checkable
class NotificationSink(Protocol):
    def emit(self, event: NotificationEvent) -> None:
        ...


class InMemoryNotificationSink:
    """Sink que apenas acumula eventos; útil para testes e para a UI local."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: List[NotificationEvent] = []

    def emit(self, event: NotificationEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def events(self) -> List[NotificationEvent]:
        with self._lock:
            return list(self._events)

    def of_kind(self, kind: NotificationKind) -> List[NotificationEvent]:
        return [e for e in self.events if e.type == kind]

    def last(self) -> Optional[NotificationEvent]:
        events = self.events
        return events[-1] if events else None
