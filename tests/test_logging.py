# tests/test_logging.py
import json
import logging

from cart_recovery.core.logging import JsonFormatter, RecoveryContextFilter, component_for


def _record(name: str, **extra) -> logging.LogRecord:
    record = logging.makeLogRecord({"name": name, "levelname": "INFO", "levelno": logging.INFO, "msg": "hello"})
    record.__dict__.update(extra)
    return record


def _emit(record: logging.LogRecord) -> dict:
    assert RecoveryContextFilter(service="cart-recovery").filter(record) is True
    return json.loads(JsonFormatter().format(record))


def test_components_follow_logger_names():
    assert component_for("cart_recovery.services.reminder_service") == "dispatcher"
    assert component_for("cart_recovery.services.abandoned_cart_service") == "tracker"
    assert component_for("cart_recovery.requests") == "http"
    assert component_for("cart_recovery.services.reminder_templates") is None
    assert component_for("uvicorn.error") is None


def test_dispatcher_records_carry_service_and_component():
    payload = _emit(_record("cart_recovery.services.reminder_service", reminder_task_id=7, reminder_type="first"))

    assert payload["service"] == "cart-recovery"
    assert payload["component"] == "dispatcher"
    assert payload["message"] == "hello"
    assert payload["extra"] == {"reminder_task_id": 7, "reminder_type": "first"}


def test_explicit_component_is_kept():
    payload = _emit(_record("cart_recovery.services.reminder_service", component="expiry"))

    assert payload["component"] == "expiry"
    assert "extra" not in payload


def test_third_party_records_get_the_service_only():
    payload = _emit(_record("celery.worker"))

    assert payload["service"] == "cart-recovery"
    assert "component" not in payload
