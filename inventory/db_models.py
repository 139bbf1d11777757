# inventory/db_models.py

from sqlmodel import SQLModel, Field
from sqlalchemy import BigInteger, Column
from typing import Optional
from datetime import datetime


class ProductRecord(SQLModel, table=True):
  """Products table. Replaced wholesale on every save."""
  __tablename__ = "products"
  __table_args__ = {"extend_existing": True}

  id: int = Field(primary_key=True)
  title: str
  price: float
  description: Optional[str] = None
  category: Optional[str] = Field(default=None, index=True)
  images: str = "[]" # JSON encoded list of URLs
  created_at: datetime
  updated_at: datetime


class ApiKeyRow(SQLModel, table=True):
  """API keys table, one row per issued key (epoch milliseconds)."""
  __tablename__ = "api_keys"
  __table_args__ = {"extend_existing": True}

  api_key: str = Field(primary_key=True)
  expires_at: int = Field(sa_column=Column(BigInteger, nullable=False))
  created_at: int = Field(sa_column=Column(BigInteger, nullable=False))
