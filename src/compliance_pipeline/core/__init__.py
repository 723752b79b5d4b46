# src/compliance_pipeline/core/__init__.py
"""
Core do Compliance Pipeline.

Este pacote reúne as responsabilidades com invariantes reais do sistema:
ordenação das etapas, idempotência de disparos e supressão de
notificações duplicadas. Todo o restante (UI, clientes HTTP, e-mail,
planos de assinatura) é tratado como colaborador externo.

Componentes principais:
    - config        → resolução de configuração (merge, validação estrutural, hashing)
    - pipeline      → StepStatusVector, gate, ExecutionGuard, StatusStore
    - updates       → UpdateRecord, chave canônica e UpdateDiffEngine
    - notifications → NotificationPolicy e sinks
    - engine        → ComplianceEngine (trigger, cancel, rerun, review)
    - traceability  → Audit Log de decisões e transições

Princípios fundamentais:
    - Nenhuma decisão silenciosa: todo gate e toda transição vão para o Audit Log
    - Estado mutável compartilhado é explícito e passado por referência
    - A liberação da guarda acontece em todo caminho de saída

Limites explícitos:
    - Não persiste dados
    - Não decide política de retry da chamada remota
    - Não entrega notificações
"""
