# src/compliance_pipeline/core/config/merge.py
"""
Deep-merge canônico de configuração.

Política de merge (v1):
    - dict → merge recursivo por chave
    - list → sobrescrita total (ex.: `diff.compare_fields`)
    - escalar → sobrescrita direta
    - None na base → aceita qualquer override (chaves opcionais, ex.: timeout)
    - conflito de tipos → ConfigTypeConflictError

Nenhum input é mutado.
"""

from copy import deepcopy
from typing import Any, Dict

from .errors import ConfigTypeConflictError


def deep_merge(base: Dict[str, Any], override: Dict[str, Any], *, _path: str = "") -> Dict[str, Any]:
    """
    Combina `override` sobre `base` e retorna um novo dicionário.

    Args:
        base (Dict[str, Any]): Configuração base (defaults).
        override (Dict[str, Any]): Overrides explícitos.

    Returns:
        Dict[str, Any]: Configuração resultante.

    Raises:
        ConfigTypeConflictError: Se a mesma chave tiver tipos incompatíveis.
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts no nível raiz, recebido: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )

    result: Dict[str, Any] = deepcopy(base)

    for key, override_value in override.items():
        dotted = f"{_path}.{key}" if _path else str(key)

        if key not in result:
            result[key] = deepcopy(override_value)
            continue

        base_value = result[key]

        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value, _path=dotted)
            continue

        # chave opcional: o default é null, qualquer tipo é aceito
        if base_value is None or override_value is None:
            result[key] = deepcopy(override_value)
            continue

        if isinstance(base_value, list) and isinstance(override_value, list):
            result[key] = deepcopy(override_value)
            continue

        # int sobre float (e vice-versa) não é conflito estrutural
        numeric = (int, float)
        if (
            isinstance(base_value, numeric)
            and isinstance(override_value, numeric)
            and not isinstance(base_value, bool)
            and not isinstance(override_value, bool)
        ):
            result[key] = override_value
            continue

        if type(base_value) is not type(override_value):
            raise ConfigTypeConflictError(
                f"Conflito de tipo na chave '{dotted}': "
                f"{type(base_value).__name__} vs {type(override_value).__name__}"
            )

        result[key] = deepcopy(override_value)

    return result
