# tests/core/notifications/test_policy.py
"""
Testes da NotificationPolicy.

A política é pura: transforma um diff ou um desfecho de etapa em zero
ou um evento de notificação. A entrega é responsabilidade do sink.

Os testes asseguram que:
- diff sem novos nem alterados não gera evento
- diff com mudanças gera exatamente um `update_change` com os metadados
  esperados pelo sink (`new_updates_count`, `changed_updates_count`,
  `is_update_change`)
- sucesso gera `success`; falha gera `error` com prioridade alta
- prioridades vêm da configuração
- `notifications.enabled: false` silencia tudo
"""

import pytest

try:
    from compliance_pipeline.core.notifications import (
        NotificationContext,
        NotificationKind,
        NotificationPolicy,
        Priority,
    )
    from compliance_pipeline.core.pipeline.types import ExecutionOutcome
    from compliance_pipeline.core.updates.diff import EMPTY_DIFF, DiffResult
except Exception as e:  # noqa: BLE001
    NotificationPolicy = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(
            "Missing notification policy API. Implement:\n"
            "- src/compliance_pipeline/core/notifications/policy.py (NotificationPolicy)\n"
            "- src/compliance_pipeline/core/notifications/events.py (NotificationEvent, sinks)\n"
            f"Import error: {_IMPORT_ERR}"
        )


def _ctx(step=4):
    return NotificationContext(product_id="prod-1", step=step, product_name="Smart Thermostat")


def test_no_changes_no_event(engine_config):
    _require_imports()
    policy = NotificationPolicy(engine_config)
    assert policy.decide_update_change(EMPTY_DIFF, _ctx()) is None


def test_changes_yield_single_update_change_event(engine_config):
    _require_imports()
    policy = NotificationPolicy(engine_config)
    diff = DiffResult(new_count=2, changed_count=1, affected_keys=frozenset({"b", "a", "c"}))

    event = policy.decide_update_change(diff, _ctx())

    assert event.type == NotificationKind.UPDATE_CHANGE
    assert event.priority == Priority.MEDIUM
    assert event.product_id == "prod-1"
    assert event.step == 4
    assert event.metadata == {
        "new_updates_count": 2,
        "changed_updates_count": 1,
        "is_update_change": True,
        "affected_keys": ["a", "b", "c"],
    }
    assert "2 new and 1 changed" in event.message
    assert "Smart Thermostat" in event.title


def test_success_event(engine_config):
    _require_imports()
    policy = NotificationPolicy(engine_config)
    event = policy.decide_step_outcome(ExecutionOutcome.success({"ok": 1}), _ctx(step=1))

    assert event.type == NotificationKind.SUCCESS
    assert event.title == "Step 1 (Compliance Assessment) completed"
    assert event.priority == Priority.MEDIUM
    assert event.metadata == {"needs_review": False}


def test_failure_event_is_high_priority_and_carries_error(engine_config):
    _require_imports()
    policy = NotificationPolicy(engine_config)
    error = {"type": "EXECUTION_FAILURE", "message": "boom"}

    event = policy.decide_step_outcome(ExecutionOutcome.failure("boom"), _ctx(step=0), error=error)

    assert event.type == NotificationKind.ERROR
    assert event.priority == Priority.HIGH
    assert event.metadata == {"error": error}
    assert event.message.endswith(": boom")


def test_priorities_come_from_config(engine_config):
    _require_imports()
    engine_config["notifications"]["priorities"]["update_change"] = "high"
    engine_config["notifications"]["priorities"]["success"] = "low"
    policy = NotificationPolicy(engine_config)

    diff = DiffResult(new_count=1, affected_keys=frozenset({"k"}))
    assert policy.decide_update_change(diff, _ctx()).priority == Priority.HIGH
    assert policy.decide_step_outcome(ExecutionOutcome.success(), _ctx()).priority == Priority.LOW


def test_disabled_policy_emits_nothing(engine_config):
    _require_imports()
    engine_config["notifications"]["enabled"] = False
    policy = NotificationPolicy(engine_config)

    assert policy.decide_update_change(DiffResult(new_count=3), _ctx()) is None
    assert policy.decide_step_outcome(ExecutionOutcome.failure("x"), _ctx()) is None


def test_event_serializes_to_sink_request(engine_config):
    _require_imports()
    event = NotificationPolicy(engine_config).decide_step_outcome(ExecutionOutcome.success(), _ctx(step=2))
    data = event.to_dict()

    assert data["type"] == "success"
    assert data["priority"] == "medium"
    assert data["product_name"] == "Smart Thermostat"
    assert set(data) == {
        "type", "title", "message", "product_id", "product_name",
        "step", "priority", "metadata", "created_at",
    }
