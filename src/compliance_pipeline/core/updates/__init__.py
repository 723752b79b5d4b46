# src/compliance_pipeline/core/updates/__init__.py
"""
Detecção de mudanças em atualizações regulatórias (etapa 4).

API pública exposta:
    - UpdateRecord      → registro canonicalizado
    - canonical_key     → identidade lógica de uma atualização entre runs
    - extract_updates   → leitura de `compliance_updates` de um payload
    - diff_updates      → classificação novo / alterado / inalterado
    - DiffResult        → contagens e chaves afetadas
    - UpdateDiffEngine  → diff parametrizado por configuração
"""

from .diff import (
    DEFAULT_COMPARE_FIELDS,
    EMPTY_DIFF,
    DiffResult,
    UpdateDiffEngine,
    diff_updates,
    highlight,
)
from .records import (
    DEFAULT_PREFIX_LENGTH,
    UPDATES_PAYLOAD_KEY,
    UpdateRecord,
    canonical_key,
    extract_updates,
    identity_key,
    normalize_records,
)

__all__ = [
    "DEFAULT_COMPARE_FIELDS",
    "EMPTY_DIFF",
    "DiffResult",
    "UpdateDiffEngine",
    "diff_updates",
    "highlight",
    "DEFAULT_PREFIX_LENGTH",
    "UPDATES_PAYLOAD_KEY",
    "UpdateRecord",
    "canonical_key",
    "extract_updates",
    "identity_key",
    "normalize_records",
]
