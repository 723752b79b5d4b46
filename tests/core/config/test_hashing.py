# tests/core/config/test_hashing.py
"""
Testes do hashing de configuração.

O hash identifica a configuração efetiva no Audit Log; mudar
`diff.compare_fields`, por exemplo, altera o volume de notificações e
precisa ser visível na trilha.

Os testes asseguram que:
- configurações equivalentes produzem o mesmo hash
- o hash independe da ordem das chaves
- o algoritmo corresponde ao SHA-256 do JSON canônico
- alterações de configuração produzem hashes diferentes

Invariantes:
    - O hash retornado possui 64 caracteres hexadecimais
    - O cálculo não depende de estado externo
"""

import hashlib
import json

import pytest

try:
    from compliance_pipeline.core.config.hashing import compute_config_hash
except Exception as e:  # noqa: BLE001
    compute_config_hash = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _canonical_json_bytes(obj: dict) -> bytes:
    """Referência explícita de "JSON canônico" usada para comparar com o core."""
    s = json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return s.encode("utf-8")


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing hashing module. Implement:\n"
            "- src/compliance_pipeline/core/config/hashing.py (compute_config_hash)\n"
            "Policy expected: SHA-256 of canonical JSON serialization.\n"
            f"Import error: {_IMPORT_ERR}"
        )


def test_hash_is_deterministic():
    _require_imports()
    h1 = compute_config_hash({"b": 2, "a": 1})
    h2 = compute_config_hash({"a": 1, "b": 2})
    assert h1 == h2
    assert isinstance(h1, str)
    assert len(h1) == 64


def test_hash_matches_sha256_of_canonical_json():
    """
    Verifica que o hash corresponde ao SHA-256 do JSON canônico
    (chaves ordenadas, separadores compactos, UTF-8).
    """
    _require_imports()
    cfg = {
        "diff": {"compare_fields": ["description", "impact"], "description_prefix_length": 100},
        "notifications": {"enabled": True, "priorities": {"error": "high"}},
    }
    expected = hashlib.sha256(_canonical_json_bytes(cfg)).hexdigest()
    assert compute_config_hash(cfg) == expected


def test_hash_changes_on_override():
    _require_imports()
    base = {"diff": {"compare_fields": ["description", "impact"]}}
    changed = {"diff": {"compare_fields": ["description"]}}
    assert compute_config_hash(base) != compute_config_hash(changed)


def test_hash_rejects_non_dict():
    _require_imports()
    with pytest.raises(TypeError):
        compute_config_hash(["not", "a", "dict"])
