# tests/core/updates/test_diff.py
"""
Testes do UpdateDiffEngine.

O diff decide se atualizações regulatórias recém-obtidas são de fato
novidade, evitando notificações repetidas a cada reexecução da etapa 4.

Os testes asseguram que:
- a primeira carga de um produto não é notícia (cold start)
- diff(X, X) é sempre vazio (idempotência)
- registros com chave desconhecida são novos
- registros com mesma chave e descrição/impacto diferentes são alterados
- descrições reescritas com mesma regulation/title/date contam como alteradas
- duplicatas no lote atual são avaliadas de forma independente
- o conjunto de campos comparados é configurável

Decisões arquiteturais:
    - Comparação textual exata, sem normalização
    - Resultado derivado, nunca persistido

Limites explícitos:
    - Não valida a política de notificação (ver test_policy)
"""

import pytest

try:
    from compliance_pipeline.core.updates.diff import (
        EMPTY_DIFF,
        UpdateDiffEngine,
        diff_updates,
        highlight,
    )
    from compliance_pipeline.core.updates.records import canonical_key
except Exception as e:  # noqa: BLE001
    diff_updates = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing diff API. Implement:\n"
            "- src/compliance_pipeline/core/updates/diff.py (diff_updates, UpdateDiffEngine)\n"
            f"Import error: {_IMPORT_ERR}"
        )


EU_2023 = {"regulation": "EU-2023-1", "title": "A", "date": "2023-01-01", "description": "orig"}
EU_2024 = {"regulation": "EU-2024-2", "title": "B", "date": "2024-01-01", "description": "new"}


def test_cold_start_is_not_news():
    """
    Sem atualizações anteriores, nenhum registro é novo nem alterado,
    independente do tamanho do lote atual.
    """
    _require_imports()
    assert diff_updates(None, [EU_2023, EU_2024]) == EMPTY_DIFF
    assert diff_updates([], [EU_2023, EU_2024]) == EMPTY_DIFF


def test_empty_current_yields_empty_result():
    _require_imports()
    assert diff_updates([EU_2023], []) == EMPTY_DIFF
    assert diff_updates([EU_2023], None) == EMPTY_DIFF


@pytest.mark.parametrize(
    "records",
    [
        [EU_2023],
        [EU_2023, EU_2024],
        [EU_2023, dict(EU_2023)],
        [dict(EU_2023, impact="high"), {"name": "RoHS", "update_date": "2025-01-01"}],
    ],
)
def test_self_diff_is_empty(records):
    _require_imports()
    result = diff_updates(records, records)
    assert (result.new_count, result.changed_count, result.affected_keys) == (0, 0, frozenset())
    assert result.has_changes is False


def test_new_vs_changed_classification():
    _require_imports()
    result = diff_updates([EU_2023], [EU_2023, EU_2024])

    assert result.new_count == 1
    assert result.changed_count == 0
    assert result.affected_keys == {canonical_key(EU_2024)}


def test_rewritten_description_counts_as_changed():
    """
    Mesma regulation/title/date com a descrição reescrita: a chave
    canônica muda (inclui o prefixo da descrição), mas a atualização é a
    mesma, e o conteúdo mudou.
    """
    _require_imports()
    revised = dict(EU_2023, description="revised text")
    result = diff_updates([EU_2023], [revised])

    assert result.new_count == 0
    assert result.changed_count == 1
    assert result.changed_keys == {canonical_key(revised)}


def test_rewritten_description_is_new_without_identity_fallback():
    _require_imports()
    revised = dict(EU_2023, description="revised text")
    result = diff_updates([EU_2023], [revised], identity_fallback=False)

    assert (result.new_count, result.changed_count) == (1, 0)


def test_impact_change_with_same_key_is_changed():
    _require_imports()
    before = dict(EU_2023, impact="low")
    after = dict(EU_2023, impact="high")

    result = diff_updates([before], [after])
    assert (result.new_count, result.changed_count) == (0, 1)
    assert result.affected_keys == {canonical_key(after)}


def test_change_beyond_prefix_is_changed_not_new():
    _require_imports()
    before = dict(EU_2023, description="x" * 100 + " v1")
    after = dict(EU_2023, description="x" * 100 + " v2")

    result = diff_updates([before], [after])
    assert (result.new_count, result.changed_count) == (0, 1)


def test_records_without_identity_never_match_by_identity():
    _require_imports()
    result = diff_updates([{"description": "a"}], [{"description": "b"}])
    assert (result.new_count, result.changed_count) == (1, 0)


def test_duplicates_in_current_are_counted_independently():
    _require_imports()
    changed = dict(EU_2023, impact="high")
    result = diff_updates([EU_2023], [changed, changed, EU_2024, EU_2024])

    assert result.changed_count == 2
    assert result.new_count == 2
    assert len(result.affected_keys) == 2


def test_duplicate_previous_keys_keep_self_diff_empty():
    """
    Registros anteriores com a mesma chave canônica e `impact` diferente.

    Invariantes:
        - `diff(X, X)` é vazio mesmo com chaves conflitantes em X
        - Um registro igual a qualquer anterior da chave é inalterado
        - Um valor inédito é comparado ao último anterior da chave (alterado)
    """
    _require_imports()
    previous = [dict(EU_2023, impact="low"), dict(EU_2023, impact="high")]

    assert diff_updates(previous, previous) == EMPTY_DIFF
    assert diff_updates(previous, [dict(EU_2023, impact="high")]).changed_count == 0
    assert diff_updates(previous, [dict(EU_2023, impact="low")]).changed_count == 0
    assert diff_updates(previous, [dict(EU_2023, impact="medium")]).changed_count == 1


def test_compare_fields_are_configurable():
    """
    Com `deadline` incluído em `diff.compare_fields`, uma mudança de prazo
    passa a contar como alteração; com o default, não.
    """
    _require_imports()
    before = dict(EU_2023, deadline="2026-01-01")
    after = dict(EU_2023, deadline="2027-01-01")

    default_engine = UpdateDiffEngine({})
    assert default_engine.diff([before], [after]).changed_count == 0

    engine = UpdateDiffEngine({"diff": {"compare_fields": ["description", "impact", "deadline"]}})
    assert engine.diff([before], [after]).changed_count == 1


def test_highlight_returns_affected_records_in_order():
    _require_imports()
    engine = UpdateDiffEngine({})
    current = [EU_2024, EU_2023]
    result = engine.diff([EU_2023], current)

    highlighted = engine.highlight(current, result)
    assert [r.regulation for r in highlighted] == ["EU-2024-2"]
    assert highlight(current, EMPTY_DIFF) == []
