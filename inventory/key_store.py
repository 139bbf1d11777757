# inventory/key_store.py

import re
import time
import uuid
from enum import Enum
from typing import Callable, Dict, Optional

from inventory.exceptions import InvalidDuration, StorageError
from inventory.logger import get_logger
from inventory.models import ApiKeyRecord
from inventory.storage import Storage

log = get_logger(__name__)

DURATION_PATTERN = re.compile(r"^(\d+)([hdw])$")

# Milliseconds per unit
DURATION_UNITS = {
  "h": 60 * 60 * 1000,
  "d": 24 * 60 * 60 * 1000,
  "w": 7 * 24 * 60 * 60 * 1000,
}


def now_ms() -> int:
  return int(time.time() * 1000)


def parse_duration(spec: str) -> int:
  """
  Convert a duration specifier like '1h', '7d' or '2w' to milliseconds.

  Raises:
    InvalidDuration: spec does not match <amount><h|d|w> or amount is zero
  """
  match = DURATION_PATTERN.match(spec) if isinstance(spec, str) else None
  if not match:
    raise InvalidDuration()
  amount, unit = match.groups()
  if int(amount) == 0:
    raise InvalidDuration()
  return int(amount) * DURATION_UNITS[unit]


class KeyStatus(str, Enum):
  OK = "ok"
  MISSING = "missing"
  EXPIRED = "expired"


class KeyStore:
  """
  Active API keys by token.

  validate() evicts an expired key as a side effect: the first lookup at or
  after expires_at removes it from memory and from storage.
  """

  def __init__(self, storage: Storage, clock: Callable[[], int] = now_ms):
    self.storage = storage
    self.clock = clock
    self._keys: Dict[str, ApiKeyRecord] = {}

  def __len__(self):
    return len(self._keys)

  def __contains__(self, token):
    return token in self._keys

  def load(self) -> int:
    self._keys = dict(self.storage.load_keys())
    log.info(f"Loaded {len(self._keys)} API keys")
    return len(self._keys)

  def get(self, token: str) -> Optional[ApiKeyRecord]:
    return self._keys.get(token)

  def issue(self, duration_spec: str = "1d") -> ApiKeyRecord:
    duration = parse_duration(duration_spec)
    created_at = self.clock()
    record = ApiKeyRecord(key=str(uuid.uuid4()), created_at=created_at, expires_at=created_at + duration)

    # Persist before the key becomes usable
    self.storage.save_key(record)
    self._keys[record.key] = record
    log.info(f"Issued API key {_mask(record.key)} valid for {duration_spec} (expires {record.expires_at_iso})")
    return record

  def validate(self, token: str) -> KeyStatus:
    record = self._keys.get(token)
    if record is None:
      return KeyStatus.MISSING

    if record.is_expired(self.clock()):
      # Concurrent requests may race here, only the one that pops evicts
      if self._keys.pop(token, None) is not None:
        try:
          self.storage.delete_key(token)
        except StorageError as e:
          # Row stays in storage, it is evicted again on first use after a reload
          log.error(f"Failed to delete expired API key {_mask(token)} from storage: {e}")
        log.info(f"Evicted expired API key {_mask(token)}")
      return KeyStatus.EXPIRED

    return KeyStatus.OK

  def revoke(self, token: str) -> bool:
    if token not in self._keys:
      log.info(f"Revoke requested for unknown API key {_mask(token)}")
      return False
    self.storage.delete_key(token)
    if self._keys.pop(token, None) is None:
      return False
    log.info(f"Revoked API key {_mask(token)}")
    return True


def _mask(token: str) -> str:
  return f"{token[:8]}..." if token else "<empty>"
