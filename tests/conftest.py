# tests/conftest.py

import os

# Must be set before inventory.main builds its module level app
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("STORAGE_BACKEND", "memory")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from inventory.config import Settings
from inventory.main import create_app
from inventory.models import Product
from inventory.storage import MemoryStorage

MASTER_KEY = "test-master-key"
START_MS = 1_700_000_000_000


class FakeClock:
  """Controllable epoch milliseconds source."""
  def __init__(self, now: int = START_MS):
    self.now = now

  def __call__(self) -> int:
    return self.now

  def advance(self, ms: int):
    self.now += ms


def make_product(product_id: int, title: str = None, price: float = 10.0, category: str = "Books",
                 description: str = "A product") -> Product:
  created = datetime(2024, 1, 1, tzinfo=timezone.utc)
  return Product(
    id=product_id,
    title=title or f"Product {product_id}",
    price=price,
    description=description,
    category=category,
    images=[f"https://example.com/{product_id}.jpg"],
    created_at=created,
    updated_at=created,
  )


@pytest.fixture
def clock():
  return FakeClock()


@pytest.fixture
def storage():
  return MemoryStorage()


@pytest.fixture
def settings():
  return Settings(env="testing", master_key=MASTER_KEY, storage_backend="memory")


@pytest.fixture
def client(settings, storage, clock):
  app = create_app(settings=settings, storage=storage, clock=clock)
  with TestClient(app, raise_server_exceptions=False) as test_client:
    yield test_client


@pytest.fixture
def api_key(client):
  response = client.post("/api/auth/generate-key", json={"expiresIn": "1h", "masterKey": MASTER_KEY})
  assert response.status_code == 200
  return response.json()["apiKey"]


@pytest.fixture
def auth(api_key):
  return {"x-api-key": api_key}
