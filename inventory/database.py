# inventory/database.py

from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool
import os
from inventory.logger import get_logger

log = get_logger(__name__)

DEFAULT_DB_FILE = "data/inventory.sqlite"
DEFAULT_DB_URL = f"sqlite:///{DEFAULT_DB_FILE}"


def create_db_engine(database_url: str = DEFAULT_DB_URL) -> Engine:
  """Create engine for the given url. Nothing is touched on disk until init_db()."""
  url = make_url(database_url)
  if url.get_backend_name() != "sqlite":
    return create_engine(database_url, echo=False, pool_pre_ping=True)

  if not url.database or url.database == ":memory:":
    # In-memory database shared by every session of this engine
    return create_engine(database_url, echo=False, connect_args={"check_same_thread":False}, poolclass=StaticPool)

  return create_engine(database_url, echo=False, connect_args={"check_same_thread":False})


def init_db(engine: Engine):
  """Creates products and api_keys tables, and the directory of a SQLite file"""
  from inventory.db_models import ProductRecord, ApiKeyRow

  if engine.url.get_backend_name() == "sqlite" and engine.url.database not in (None, "", ":memory:"):
    # Ensure the db directory exists
    db_dir = os.path.dirname(engine.url.database)
    if db_dir:
      os.makedirs(db_dir, exist_ok=True)

  SQLModel.metadata.create_all(engine, tables=[ProductRecord.__table__, ApiKeyRow.__table__], checkfirst=True)
  log.info(f"Initialized database ({engine.url.render_as_string(hide_password=True)})")


def get_session(engine: Engine) -> Session:
  """Create new session for the given engine"""
  return Session(engine)
