# src/compliance_pipeline/core/traceability/audit.py
"""
Audit Log v1 — trilha de auditoria de conformidade do pipeline.

O Audit Log consolida, de forma determinística e auditável:
    - metadados do Engine (versão, hash da configuração, início)
    - o último estado conhecido de cada etapa de cada produto
    - o Event Log ordenado de decisões de gate, transições de status,
      cancelamentos, revisões e notificações emitidas

Princípios fundamentais:
    - Nenhum evento é emitido implicitamente
    - A ordem do Event Log reflete a ordem real de chamada
    - O Audit Log é serializável e reconstruível (round-trip JSON)

Decisões arquiteturais:
    - UTC é o timezone canônico para todos os timestamps
    - O formato e o armazenamento definitivos são externos: o Engine
      depende apenas do protocolo `AuditSink`; `AuditLog` é a
      implementação de referência em memória

Limites explícitos:
    - Não executa etapas
    - Não decide elegibilidade
    - Não realiza migração de versões de schema
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


# Tipos de evento canônicos
GATE_DECISION = "gate_decision"
STATUS_TRANSITION = "status_transition"
STEP_EXECUTED = "step_executed"
STEP_RERUN = "step_rerun"
RERUN_REQUESTED = "rerun_requested"
STEP_CANCELLED = "step_cancelled"
REVIEW_APPROVED = "review_approved"
REVIEW_REJECTED = "review_rejected"
NOTIFICATION_EMITTED = "notification_emitted"
ENGINE_STARTED = "engine_started"


def _ensure_tzaware_utc(dt: datetime) -> datetime:
    """Timestamps naive são assumidos como UTC; os demais são convertidos."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _ensure_tzaware_utc(dt).isoformat()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@runtime_checkable
class AuditSink(Protocol):
    """Destino da trilha de auditoria (formato e armazenamento externos)."""

    def record(
        self,
        event_type: str,
        *,
        ts: datetime,
        product_id: Optional[str] = None,
        step: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        ...


@dataclass
class AuditLog:
    """
    Audit Log v1 — registro de auditoria de um Engine.

    Campos principais:
        - meta: metadados do Engine (started_at, version, config_hash)
        - products: último estado por produto e etapa
          (`{product_id: {"0": "completed", ...}}`)
        - events: Event Log ordenado

    Invariantes:
        - `events` é sempre uma lista ordenada pela chamada
        - `products` só é atualizado por eventos de transição
        - A estrutura completa é serializável

    Limites explícitos:
        - Sink de referência em memória: `events` cresce até ser drenado
          (`drain`) por quem persiste a trilha; `products` é limitado ao
          número de produtos e etapas
    """
    meta: Dict[str, Any]
    products: Dict[str, Dict[str, str]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False, compare=False)

    def record(
        self,
        event_type: str,
        *,
        ts: datetime,
        product_id: Optional[str] = None,
        step: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> None:
        ev: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts)}
        if product_id is not None:
            ev["product_id"] = product_id
        if step is not None:
            ev["step"] = step
        if payload is not None:
            ev["payload"] = dict(payload)

        with self._lock:
            self.events.append(ev)
            if event_type == STATUS_TRANSITION and product_id is not None and step is not None:
                to_state = (payload or {}).get("to")
                if to_state is not None:
                    self.products.setdefault(product_id, {})[str(step)] = to_state

    def events_of(self, event_type: str, *, product_id: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            return [
                dict(e)
                for e in self.events
                if e["event_type"] == event_type
                and (product_id is None or e.get("product_id") == product_id)
            ]

    def drain(self) -> List[Dict[str, Any]]:
        """Remove e retorna os eventos acumulados, na ordem; `products` é mantido."""
        with self._lock:
            drained, self.events = self.events, []
        return drained

    def to_dict(self) -> Dict[str, Any]:
        """Cópia serializável e independente do estado interno."""
        with self._lock:
            return {
                "meta": dict(self.meta),
                "products": {k: dict(v) for k, v in self.products.items()},
                "events": [dict(e) for e in self.events],
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditLog":
        """Reconstrução permissiva: campos ausentes viram estruturas vazias."""
        return cls(
            meta=dict(data.get("meta", {})),
            products={k: dict(v) for k, v in (data.get("products", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
        )


def create_audit_log(*, started_at: datetime, version: str, config_hash: str) -> AuditLog:
    """
    Cria o Audit Log inicial de um Engine.

    ⚠️ Não emite eventos: o Event Log inicia vazio e só é preenchido por
    chamadas explícitas (o Engine registra `engine_started` por conta própria).
    """
    return AuditLog(
        meta={
            "started_at": _iso(started_at),
            "version": version,
            "config_hash": config_hash,
        },
        products={},
        events=[],
    )


def record_gate_decision(
    sink: AuditSink,
    *,
    product_id: str,
    step: int,
    allowed: bool,
    reason: Optional[str],
    source: str,
    ts: Optional[datetime] = None,
) -> None:
    sink.record(
        GATE_DECISION,
        ts=ts or utcnow(),
        product_id=product_id,
        step=step,
        payload={"allowed": allowed, "reason": reason, "source": source},
    )


def record_transition(
    sink: AuditSink,
    *,
    product_id: str,
    step: int,
    from_state: str,
    to_state: str,
    cause: str,
    ts: Optional[datetime] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    payload: Dict[str, Any] = {"from": from_state, "to": to_state, "cause": cause}
    if extra:
        payload.update(extra)
    sink.record(STATUS_TRANSITION, ts=ts or utcnow(), product_id=product_id, step=step, payload=payload)


def save_audit_log(log: AuditLog, path: Path) -> None:
    """
    Persiste o Audit Log em JSON determinístico (`sort_keys=True`).

    Diretórios intermediários são criados automaticamente.

    Raises:
        OSError: Em caso de falha de escrita.
        TypeError: Se algum payload não for serializável em JSON.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(log.to_dict(), f, ensure_ascii=False, sort_keys=True, indent=2)
        f.write("\n")


def load_audit_log(path: Path) -> AuditLog:
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Audit log root deve ser dict, recebido: {type(data).__name__}")
    return AuditLog.from_dict(data)
