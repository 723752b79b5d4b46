# src/compliance_pipeline/core/config/hashing.py
"""
Hash canônico da configuração efetiva.

O hash é registrado no Audit Log ao criar o Engine, permitindo associar
cada decisão de gate e cada notificação à configuração que a produziu
(em especial `diff.compare_fields`, que altera o volume de notificações).
"""

import hashlib
import json
from typing import Any, Dict


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Gera o SHA-256 hexadecimal da configuração serializada em JSON canônico
    (chaves ordenadas, separadores compactos, UTF-8).

    Raises:
        TypeError: Se `config` não for um dicionário.
    """
    if not isinstance(config, dict):
        raise TypeError(
            f"Config para hashing deve ser dict, recebido: {type(config).__name__}"
        )

    canonical_json = json.dumps(
        config,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()
