# tests/test_logger.py

import json
import logging
import sys

from inventory.logger import JsonFormatter


def _record(msg="Issued API key", exc_info=None):
  return logging.LogRecord(
    name="inventory.key_store", level=logging.INFO, pathname="key_store.py", lineno=87,
    msg=msg, args=(), exc_info=exc_info, func="issue",
  )


def test_json_record_carries_service_and_env(monkeypatch):
  monkeypatch.setenv("SERVICE_NAME", "inventory-test")
  entry = json.loads(JsonFormatter(env="testing").format(_record()))

  assert entry["service"] == "inventory-test"
  assert entry["env"] == "testing"
  assert entry["level"] == "INFO"
  assert entry["logger"] == "inventory.key_store"
  assert entry["message"] == "Issued API key"
  assert entry["function"] == "issue"
  assert entry["timestamp"].endswith("+00:00")
  assert "exception" not in entry


def test_service_name_defaults(monkeypatch):
  monkeypatch.delenv("SERVICE_NAME", raising=False)
  assert json.loads(JsonFormatter().format(_record()))["service"] == "inventory-api"


def test_json_record_includes_exception():
  try:
    raise ValueError("disk full")
  except ValueError:
    record = _record("Error writing products.json", exc_info=sys.exc_info())

  entry = json.loads(JsonFormatter(service="inventory-api").format(record))
  assert "ValueError: disk full" in entry["exception"]
