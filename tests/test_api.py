# tests/test_api.py

import logging
import math
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from conftest import MASTER_KEY, START_MS, make_product
from inventory.config import Settings
from inventory.exceptions import StorageError
from inventory.main import create_app
from inventory.mock_data import CATEGORIES

HOUR_MS = 60 * 60 * 1000

test_log = logging.getLogger("tests")


def _parse_iso_ms(value: str) -> int:
  return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp() * 1000)


# ---------------------------
# Key issuance
# ---------------------------
def test_generate_key_returns_key_and_expiry(client):
  response = client.post("/api/auth/generate-key", json={"expiresIn": "1h", "masterKey": MASTER_KEY})
  assert response.status_code == 200
  body = response.json()
  assert body["apiKey"]
  assert body["expiresAt"].endswith("Z")
  assert _parse_iso_ms(body["expiresAt"]) - START_MS == HOUR_MS


def test_generate_key_defaults_to_one_day(client):
  response = client.post("/api/auth/generate-key", json={"masterKey": MASTER_KEY})
  assert response.status_code == 200
  assert _parse_iso_ms(response.json()["expiresAt"]) - START_MS == 24 * HOUR_MS


@pytest.mark.parametrize("body", [
  {"expiresIn": "1h", "masterKey": "wrong"},
  {"expiresIn": "1h"},
  None,
])
def test_generate_key_rejects_master_key_mismatch(client, body):
  response = client.post("/api/auth/generate-key", json=body)
  assert response.status_code == 403
  assert response.json() == {"message": "Invalid master key"}


def test_generate_key_forbidden_when_master_key_unset(storage, clock):
  app = create_app(settings=Settings(env="testing", master_key=None), storage=storage, clock=clock)
  with TestClient(app) as test_client:
    response = test_client.post("/api/auth/generate-key", json={"expiresIn": "1h", "masterKey": ""})
  assert response.status_code == 403


@pytest.mark.parametrize("expires_in", ["1m", "h1", "1.5h", "", "0d", " 1h"])
def test_generate_key_rejects_malformed_duration(client, expires_in):
  response = client.post("/api/auth/generate-key", json={"expiresIn": expires_in, "masterKey": MASTER_KEY})
  assert response.status_code == 400
  assert response.json()["message"] == "Invalid expiresIn format. Use format like 1h, 1d, 7d"


def test_generate_key_persists_to_storage(client, storage):
  response = client.post("/api/auth/generate-key", json={"expiresIn": "2w", "masterKey": MASTER_KEY})
  key = response.json()["apiKey"]
  assert key in storage.keys
  assert storage.keys[key].expires_at - storage.keys[key].created_at == 2 * 7 * 24 * HOUR_MS


def test_generate_key_storage_failure_is_internal_error(client, storage, monkeypatch):
  def failing_save(record):
    raise StorageError("save_key")
  monkeypatch.setattr(storage, "save_key", failing_save)

  response = client.post("/api/auth/generate-key", json={"expiresIn": "1h", "masterKey": MASTER_KEY})
  assert response.status_code == 500
  assert response.json() == {"message": "Storage operation 'save_key' failed"}
  assert client.get("/health").json()["apiKeys"] == 0


# ---------------------------
# Key guard
# ---------------------------
def test_products_require_api_key(client):
  response = client.get("/api/products")
  assert response.status_code == 401
  assert response.json() == {"message": "API key is required"}


def test_products_reject_unknown_key(client):
  response = client.get("/api/products", headers={"x-api-key": "not-a-key"})
  assert response.status_code == 401
  assert response.json() == {"message": "Invalid API key"}


def test_expired_key_is_rejected_then_evicted(client, auth, clock, storage):
  assert client.get("/api/categories", headers=auth).status_code == 200

  clock.advance(HOUR_MS - 1)
  assert client.get("/api/categories", headers=auth).status_code == 200

  clock.advance(1)
  response = client.get("/api/categories", headers=auth)
  assert response.status_code == 401
  assert response.json() == {"message": "API key has expired"}
  assert auth["x-api-key"] not in storage.keys

  response = client.get("/api/categories", headers=auth)
  assert response.json() == {"message": "Invalid API key"}


def test_revoke_key(client, auth):
  response = client.post("/api/auth/revoke-key", json={"apiKey": auth["x-api-key"], "masterKey": MASTER_KEY})
  assert response.status_code == 200
  assert response.json() == {"message": "API key revoked", "revoked": True}

  assert client.get("/api/products", headers=auth).json() == {"message": "Invalid API key"}

  response = client.post("/api/auth/revoke-key", json={"apiKey": auth["x-api-key"], "masterKey": MASTER_KEY})
  assert response.json()["revoked"] is False


def test_revoke_key_requires_master_key(client, auth):
  response = client.post("/api/auth/revoke-key", json={"apiKey": auth["x-api-key"], "masterKey": "nope"})
  assert response.status_code == 403
  assert client.get("/api/products", headers=auth).status_code == 200


def test_health_is_not_guarded(client):
  response = client.get("/health")
  assert response.status_code == 200
  assert response.json() == {"status": "ok", "products": 100, "apiKeys": 0}


# ---------------------------
# CORS
# ---------------------------
def _preflight(test_client, origin):
  return test_client.options("/api/products", headers={
    "Origin": origin,
    "Access-Control-Request-Method": "GET",
    "Access-Control-Request-Headers": "x-api-key",
  })


def test_cors_preflight_needs_no_api_key(client):
  response = _preflight(client, "http://localhost:8501")
  assert response.status_code == 200
  assert response.headers["access-control-allow-origin"] == "*"
  assert "x-api-key" in response.headers["access-control-allow-headers"].lower()


def test_cors_headers_on_guard_rejection(client):
  response = client.get("/api/products", headers={"Origin": "http://localhost:8501"})
  assert response.status_code == 401
  assert response.headers["access-control-allow-origin"] == "*"


def test_cors_configured_origins(storage, clock):
  settings = Settings(env="testing", master_key=MASTER_KEY, storage_backend="memory",
                      cors_origins=["http://dashboard.local"])
  app = create_app(settings=settings, storage=storage, clock=clock)
  with TestClient(app) as test_client:
    allowed = _preflight(test_client, "http://dashboard.local")
    denied = _preflight(test_client, "http://evil.example")
  assert allowed.status_code == 200
  assert allowed.headers["access-control-allow-origin"] == "http://dashboard.local"
  assert denied.status_code == 400
  assert "access-control-allow-origin" not in denied.headers


# ---------------------------
# Products
# ---------------------------
def test_list_products_example_query(client, auth):
  response = client.get("/api/products", params={"limit": 5, "offset": 0, "sort": "price", "order": "desc"}, headers=auth)
  assert response.status_code == 200
  body = response.json()
  prices = [p["price"] for p in body["products"]]
  assert len(prices) == 5
  assert prices == sorted(prices, reverse=True)
  assert body["pagination"] == {"total": 100, "limit": 5, "offset": 0, "totalPages": 20}
  test_log.info("test_list_products_example_query completed successfully.")


def test_list_products_defaults(client, auth):
  body = client.get("/api/products", headers=auth).json()
  assert [p["id"] for p in body["products"]] == list(range(1, 11))
  assert body["pagination"] == {"total": 100, "limit": 10, "offset": 0, "totalPages": 10}


def test_list_products_ignores_malformed_numbers(client, auth):
  params = {"limit": "abc", "offset": "x", "minPrice": "cheap", "maxPrice": ""}
  body = client.get("/api/products", params=params, headers=auth).json()
  assert body["pagination"] == {"total": 100, "limit": 10, "offset": 0, "totalPages": 10}


def test_list_products_limit_zero_has_no_pages(client, auth):
  body = client.get("/api/products", params={"limit": 0}, headers=auth).json()
  assert body["products"] == []
  assert body["pagination"]["totalPages"] == 0


def test_list_products_offset_past_end(client, auth):
  body = client.get("/api/products", params={"offset": 500}, headers=auth).json()
  assert body["products"] == []
  assert body["pagination"]["total"] == 100


def test_list_products_filters(client, auth):
  category = client.get("/api/categories", headers=auth).json()[0]
  params = {"category": category, "minPrice": "100", "maxPrice": "600", "limit": 100}
  body = client.get("/api/products", params=params, headers=auth).json()
  assert body["pagination"]["total"] == len(body["products"])
  for product in body["products"]:
    assert product["category"] == category
    assert 100 <= product["price"] <= 600


def test_pages_reconstruct_filtered_sequence(client, auth):
  full = client.get("/api/products", params={"limit": 100, "sort": "title"}, headers=auth).json()["products"]
  pages = []
  for offset in range(0, 100, 7):
    page = client.get("/api/products", params={"limit": 7, "offset": offset, "sort": "title"}, headers=auth).json()
    assert page["pagination"]["totalPages"] == math.ceil(100 / 7)
    pages.extend(page["products"])
  assert pages == full


def test_get_product_by_id(client, auth):
  response = client.get("/api/products/1", headers=auth)
  assert response.status_code == 200
  product = response.json()
  assert product["id"] == 1
  assert set(product) == {"id", "title", "price", "description", "category", "images", "createdAt", "updatedAt"}
  assert _parse_iso_ms(product["updatedAt"]) >= _parse_iso_ms(product["createdAt"])


@pytest.mark.parametrize("product_id", ["999", "0", "abc", "1_0", "%201", "1%20", "+1", "-1", "1.0", "%D9%A1"])
def test_get_product_not_found(client, auth, product_id):
  response = client.get(f"/api/products/{product_id}", headers=auth)
  assert response.status_code == 404
  assert response.json() == {"message": "Product not found"}


def test_categories_are_sorted_and_known(client, auth):
  categories = client.get("/api/categories", headers=auth).json()
  assert categories == sorted(set(categories))
  assert set(categories) <= set(CATEGORIES)


def test_startup_loads_persisted_products(storage, settings, clock):
  storage.save_products([make_product(1, category="Books"), make_product(2, category="Automotive")])
  app = create_app(settings=settings, storage=storage, clock=clock)
  with TestClient(app) as test_client:
    key = test_client.post("/api/auth/generate-key", json={"masterKey": MASTER_KEY}).json()["apiKey"]
    categories = test_client.get("/api/categories", headers={"x-api-key": key}).json()
  assert categories == ["Automotive", "Books"]


# ---------------------------
# Regeneration
# ---------------------------
def test_regenerate_products(client, auth, storage):
  response = client.post("/api/admin/regenerate-products", json={"count": 7, "masterKey": MASTER_KEY}, headers=auth)
  assert response.status_code == 200
  assert response.json() == {"message": "Products regenerated successfully", "count": 7}

  body = client.get("/api/products", params={"limit": 50}, headers=auth).json()
  assert [p["id"] for p in body["products"]] == list(range(1, 8))
  assert client.get("/api/products/8", headers=auth).status_code == 404
  assert len(storage.products) == 7


def test_regenerate_requires_api_key_and_master_key(client, auth):
  response = client.post("/api/admin/regenerate-products", json={"count": 5, "masterKey": MASTER_KEY})
  assert response.status_code == 401

  response = client.post("/api/admin/regenerate-products", json={"count": 5, "masterKey": "bad"}, headers=auth)
  assert response.status_code == 403
  assert response.json() == {"message": "Invalid master key"}


def test_regenerate_rejects_invalid_count(client, auth):
  response = client.post("/api/admin/regenerate-products", json={"count": 0, "masterKey": MASTER_KEY}, headers=auth)
  assert response.status_code == 400
  assert response.json()["message"].startswith("Invalid request")


def test_regenerate_storage_failure_keeps_previous_catalog(client, auth, storage, monkeypatch):
  def failing_save(products):
    raise StorageError("save_products")
  monkeypatch.setattr(storage, "save_products", failing_save)

  response = client.post("/api/admin/regenerate-products", json={"count": 3, "masterKey": MASTER_KEY}, headers=auth)
  assert response.status_code == 500
  assert client.get("/api/products", headers=auth).json()["pagination"]["total"] == 100


# ---------------------------
# Error handling
# ---------------------------
def test_unknown_route_uses_message_body(client, auth):
  response = client.get("/api/unknown", headers=auth)
  assert response.status_code == 404
  assert response.json() == {"message": "Not Found"}


def test_global_exception_handler(client, auth, monkeypatch, caplog):
  def boom():
    raise ValueError("This is a test error.")
  monkeypatch.setattr(client.app.state.catalog, "list_categories", boom)

  with caplog.at_level("ERROR"):
    response = client.get("/api/categories", headers=auth)
  assert response.status_code == 500
  assert response.json() == {"message": "Internal Server Error"}
  assert any("Unhandled Exception: This is a test error." in message for message in caplog.messages)
