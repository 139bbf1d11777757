# inventory/guard.py

import secrets
from typing import Optional

from inventory.exceptions import Unauthorized, Forbidden
from inventory.key_store import KeyStore, KeyStatus
from inventory.logger import get_logger

log = get_logger(__name__)

API_KEY_HEADER = "x-api-key"


class KeyGuard:
  """Request time gate in front of every endpoint except key issuance."""

  def __init__(self, key_store: KeyStore):
    self.key_store = key_store

  def check(self, token: Optional[str]):
    """
    Raises Unauthorized unless token is a live key.
    An expired key has already been evicted by KeyStore.validate().
    """
    if not token:
      raise Unauthorized("API key is required")

    status = self.key_store.validate(token)
    if status == KeyStatus.MISSING:
      log.warning("Rejected request with unknown API key")
      raise Unauthorized("Invalid API key")
    if status == KeyStatus.EXPIRED:
      log.warning("Rejected request with expired API key")
      raise Unauthorized("API key has expired")


def require_master_key(provided: Optional[str], expected: Optional[str]):
  """An unconfigured master key never matches."""
  if not provided or not expected or not secrets.compare_digest(provided.encode(), expected.encode()):
    log.warning("Rejected request with invalid master key")
    raise Forbidden("Invalid master key")
