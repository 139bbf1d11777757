# inventory/models.py

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime, timedelta, timezone


class Product(BaseModel):
  model_config = ConfigDict(frozen=True, populate_by_name=True)

  id: int = Field(ge=1)
  title: str
  price: float = Field(ge=0)
  description: str = ""
  category: str
  images: List[str] = Field(default_factory=list)
  created_at: datetime = Field(alias="createdAt")
  updated_at: datetime = Field(alias="updatedAt")


class ApiKeyRecord(BaseModel):
  """Issued API key. Timestamps are epoch milliseconds."""
  key: str
  created_at: int
  expires_at: int

  def is_expired(self, now_ms: int) -> bool:
    return now_ms >= self.expires_at

  @property
  def expires_at_iso(self) -> str:
    seconds, millis = divmod(self.expires_at, 1000)
    expires = datetime.fromtimestamp(seconds, tz=timezone.utc) + timedelta(milliseconds=millis)
    return expires.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------
# Request bodies
# ---------------------------
class GenerateKeyIn(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  expires_in: str = Field("1d", alias="expiresIn")
  master_key: Optional[str] = Field(None, alias="masterKey")


class RevokeKeyIn(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  api_key: str = Field(alias="apiKey")
  master_key: Optional[str] = Field(None, alias="masterKey")


class RegenerateIn(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  count: int = Field(100, ge=1, le=10000)
  master_key: Optional[str] = Field(None, alias="masterKey")


# ---------------------------
# Responses
# ---------------------------
class ApiKeyOut(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  api_key: str = Field(alias="apiKey")
  expires_at: str = Field(alias="expiresAt")


class Pagination(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  total: int
  limit: int
  offset: int
  total_pages: int = Field(alias="totalPages")


class ProductPage(BaseModel):
  products: List[Product]
  pagination: Pagination


class RegenerateOut(BaseModel):
  message: str
  count: int


class RevokeOut(BaseModel):
  message: str
  revoked: bool


class Message(BaseModel):
  message: str
