# inventory/storage.py

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from datetime import timezone
from typing import Dict, List

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select, delete

from inventory.config import Settings
from inventory.database import create_db_engine, init_db, get_session
from inventory.db_models import ProductRecord, ApiKeyRow
from inventory.exceptions import StorageError
from inventory.logger import get_logger
from inventory.models import Product, ApiKeyRecord

log = get_logger(__name__)


class Storage(ABC):
  """
  Persistence collaborator of the catalog and the key store.

  Products are saved with full replace semantics, API keys are upserted and
  deleted one by one.
  """

  def init(self):
    """Prepare the backend (tables, directories). Called once on startup."""

  @abstractmethod
  def load_products(self) -> List[Product]:
    ...

  @abstractmethod
  def save_products(self, products: List[Product]):
    ...

  @abstractmethod
  def load_keys(self) -> Dict[str, ApiKeyRecord]:
    ...

  @abstractmethod
  def save_key(self, record: ApiKeyRecord):
    ...

  @abstractmethod
  def delete_key(self, key: str):
    ...


class MemoryStorage(Storage):
  """Process local storage for ephemeral deployments and tests."""

  def __init__(self):
    self.products: List[Product] = []
    self.keys: Dict[str, ApiKeyRecord] = {}

  def load_products(self) -> List[Product]:
    return list(self.products)

  def save_products(self, products: List[Product]):
    self.products = list(products)

  def load_keys(self) -> Dict[str, ApiKeyRecord]:
    return dict(self.keys)

  def save_key(self, record: ApiKeyRecord):
    self.keys[record.key] = record

  def delete_key(self, key: str):
    self.keys.pop(key, None)


class SqlStorage(Storage):
  """Relational backend on SQLModel (SQLite by default)."""

  def __init__(self, database_url: str):
    self.engine = create_db_engine(database_url)

  def init(self):
    try:
      init_db(self.engine)
    except (SQLAlchemyError, OSError) as e:
      log.error(f"Error initializing database: {e}")
      raise StorageError("init") from e

  def load_products(self) -> List[Product]:
    session = get_session(self.engine)
    try:
      records = session.exec(select(ProductRecord).order_by(ProductRecord.id)).all()
      log.info(f"Loaded {len(records)} products from database")
      return [_product_from_record(record) for record in records]
    except SQLAlchemyError as e:
      log.error(f"Error loading products: {e}")
      raise StorageError("load_products") from e
    finally:
      session.close()

  def save_products(self, products: List[Product]):
    session = get_session(self.engine)
    try:
      # Full replace inside one transaction
      session.exec(delete(ProductRecord))
      for product in products:
        session.add(_record_from_product(product))
      session.commit()
      log.info(f"Saved {len(products)} products to database")
    except SQLAlchemyError as e:
      log.error(f"Error saving products: {e}")
      session.rollback()
      raise StorageError("save_products") from e
    finally:
      session.close()

  def load_keys(self) -> Dict[str, ApiKeyRecord]:
    session = get_session(self.engine)
    try:
      rows = session.exec(select(ApiKeyRow)).all()
      log.info(f"Loaded {len(rows)} API keys from database")
      return {
        row.api_key: ApiKeyRecord(key=row.api_key, created_at=row.created_at, expires_at=row.expires_at)
        for row in rows
      }
    except SQLAlchemyError as e:
      log.error(f"Error loading API keys: {e}")
      raise StorageError("load_keys") from e
    finally:
      session.close()

  def save_key(self, record: ApiKeyRecord):
    session = get_session(self.engine)
    try:
      # merge() is INSERT OR REPLACE on the primary key
      session.merge(ApiKeyRow(api_key=record.key, expires_at=record.expires_at, created_at=record.created_at))
      session.commit()
    except SQLAlchemyError as e:
      log.error(f"Error saving API key: {e}")
      session.rollback()
      raise StorageError("save_key") from e
    finally:
      session.close()

  def delete_key(self, key: str):
    session = get_session(self.engine)
    try:
      session.exec(delete(ApiKeyRow).where(ApiKeyRow.api_key == key))
      session.commit()
    except SQLAlchemyError as e:
      log.error(f"Error deleting API key: {e}")
      session.rollback()
      raise StorageError("delete_key") from e
    finally:
      session.close()


class JsonFileStorage(Storage):
  """Flat file backend: products.json and api_keys.json inside data_dir."""

  def __init__(self, data_dir: str):
    self.data_dir = data_dir
    self.products_file = os.path.join(data_dir, "products.json")
    self.keys_file = os.path.join(data_dir, "api_keys.json")
    # Serialises read-modify-write cycles on the files of this instance
    self._lock = threading.Lock()

  def init(self):
    try:
      os.makedirs(self.data_dir, exist_ok=True)
    except OSError as e:
      log.error(f"Error creating data directory {self.data_dir}: {e}")
      raise StorageError("init") from e
    log.info(f"Initialized flat file storage ({self.data_dir})")

  def load_products(self) -> List[Product]:
    data = self._read(self.products_file, default=[])
    return [Product.model_validate(item) for item in data]

  def save_products(self, products: List[Product]):
    with self._lock:
      self._write(self.products_file, [p.model_dump(mode="json", by_alias=True) for p in products])
    log.info(f"Saved {len(products)} products to {self.products_file}")

  def load_keys(self) -> Dict[str, ApiKeyRecord]:
    data = self._read(self.keys_file, default={})
    return {
      key: ApiKeyRecord(key=key, created_at=item["createdAt"], expires_at=item["expiresAt"])
      for key, item in data.items()
    }

  def save_key(self, record: ApiKeyRecord):
    with self._lock:
      data = self._read(self.keys_file, default={})
      data[record.key] = {"expiresAt": record.expires_at, "createdAt": record.created_at}
      self._write(self.keys_file, data)

  def delete_key(self, key: str):
    with self._lock:
      data = self._read(self.keys_file, default={})
      if data.pop(key, None) is not None:
        self._write(self.keys_file, data)

  def _read(self, path: str, default):
    if not os.path.exists(path):
      return default
    try:
      with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
    except (OSError, ValueError) as e:
      log.error(f"Error reading {path}: {e}")
      raise StorageError(f"read {os.path.basename(path)}") from e

  def _write(self, path: str, data):
    # Write to a temp file first so readers never see a half written file
    tmp_path = None
    try:
      os.makedirs(self.data_dir, exist_ok=True)
      fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, suffix=".tmp")
      with os.fdopen(fd, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
      os.replace(tmp_path, path)
    except (OSError, TypeError, ValueError) as e:
      log.error(f"Error writing {path}: {e}")
      if tmp_path is not None and os.path.exists(tmp_path):
        os.remove(tmp_path)
      raise StorageError(f"write {os.path.basename(path)}") from e


def create_storage(settings: Settings) -> Storage:
  """
  Select the storage backend.

  Args:
    settings: Settings : storage_backend is 'sqlite', 'json' or 'memory'
  """
  backend = settings.storage_backend
  if backend == "sqlite":
    return SqlStorage(settings.database_url)
  elif backend == "json":
    return JsonFileStorage(settings.data_dir)
  elif backend == "memory":
    return MemoryStorage()
  raise ValueError(f"Unknown storage backend '{backend}'. Use sqlite, json or memory.")


def _product_from_record(record: ProductRecord) -> Product:
  return Product(
    id=record.id,
    title=record.title,
    price=record.price,
    description=record.description or "",
    category=record.category or "",
    images=json.loads(record.images or "[]"),
    created_at=_as_utc(record.created_at),
    updated_at=_as_utc(record.updated_at),
  )


def _record_from_product(product: Product) -> ProductRecord:
  return ProductRecord(
    id=product.id,
    title=product.title,
    price=product.price,
    description=product.description,
    category=product.category,
    images=json.dumps(product.images),
    created_at=product.created_at,
    updated_at=product.updated_at,
  )


def _as_utc(value):
  # SQLite drops tzinfo; stored values are always UTC
  if value.tzinfo is None:
    return value.replace(tzinfo=timezone.utc)
  return value
