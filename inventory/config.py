# inventory/config.py

import os
from typing import List, Optional
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict


class Settings(BaseModel):
  """Application settings, read from environment variables by get_settings()."""
  model_config = ConfigDict(frozen=True)

  env: str = "development" # production, development, testing
  master_key: Optional[str] = None
  storage_backend: str = "sqlite" # sqlite, json, memory
  database_url: str = "sqlite:///data/inventory.sqlite"
  data_dir: str = "data"
  default_product_count: int = 100
  cors_origins: List[str] = ["*"]
  api_url: str = "http://127.0.0.1:8000"


def get_settings() -> Settings:
  """
  Build settings from the current environment.
  Values from the .env file (ENV_FILE) fill in variables that are not already set.
  """
  load_dotenv(os.getenv("ENV_FILE", ".env"))

  return Settings(
    env=os.getenv("APP_ENV", "development"),
    master_key=os.getenv("MASTER_KEY") or None,
    storage_backend=os.getenv("STORAGE_BACKEND", "sqlite").lower(),
    database_url=os.getenv("DATABASE_URL", "sqlite:///data/inventory.sqlite"),
    data_dir=os.getenv("DATA_DIR", "data"),
    default_product_count=int(os.getenv("DEFAULT_PRODUCT_COUNT", "100")),
    cors_origins=[origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()],
    api_url=os.getenv("API_URL", "http://127.0.0.1:8000"),
  )
