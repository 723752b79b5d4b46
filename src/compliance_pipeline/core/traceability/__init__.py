# src/compliance_pipeline/core/traceability/__init__.py
"""
Pacote de rastreabilidade — Audit Log v1.

API pública exposta:
    - AuditSink             → protocolo do destino externo da trilha
    - AuditLog              → implementação de referência em memória
    - create_audit_log      → criação explícita do Audit Log
    - record_gate_decision  → registra uma decisão de gate
    - record_transition     → registra uma transição de status
    - save_audit_log        → persistência em JSON
    - load_audit_log        → restauração determinística

Invariantes:
    - O Audit Log inicia com `products` e `events` vazios
    - Eventos nunca são reordenados automaticamente
"""

from .audit import (
    ENGINE_STARTED,
    GATE_DECISION,
    NOTIFICATION_EMITTED,
    RERUN_REQUESTED,
    REVIEW_APPROVED,
    REVIEW_REJECTED,
    STATUS_TRANSITION,
    STEP_CANCELLED,
    STEP_EXECUTED,
    STEP_RERUN,
    AuditLog,
    AuditSink,
    create_audit_log,
    load_audit_log,
    record_gate_decision,
    record_transition,
    save_audit_log,
)

__all__ = [
    "ENGINE_STARTED",
    "GATE_DECISION",
    "NOTIFICATION_EMITTED",
    "RERUN_REQUESTED",
    "REVIEW_APPROVED",
    "REVIEW_REJECTED",
    "STATUS_TRANSITION",
    "STEP_CANCELLED",
    "STEP_EXECUTED",
    "STEP_RERUN",
    "AuditLog",
    "AuditSink",
    "create_audit_log",
    "load_audit_log",
    "record_gate_decision",
    "record_transition",
    "save_audit_log",
]
