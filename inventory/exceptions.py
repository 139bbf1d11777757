# inventory/exceptions.py

class InventoryError(Exception):
  """All inventory API errors. Carries the HTTP status used for the response."""
  status_code = 500
  default_message = "Internal Server Error"

  def __init__(self, message: str = None):
    self.message = message or self.default_message
    super().__init__(self.message)

class BadRequest(InventoryError):
  """Malformed request input"""
  status_code = 400
  default_message = "Bad request"

class InvalidDuration(BadRequest):
  """Duration specifier does not match <amount><h|d|w>"""
  default_message = "Invalid expiresIn format. Use format like 1h, 1d, 7d"

class Unauthorized(InventoryError):
  """Missing, unknown or expired API key"""
  status_code = 401
  default_message = "Unauthorized"

class Forbidden(InventoryError):
  """Master key mismatch"""
  status_code = 403
  default_message = "Invalid master key"

class NotFoundError(InventoryError):
  """Unknown product id"""
  status_code = 404
  default_message = "Not found"

class InternalError(InventoryError):
  """Failure during a mutating operation"""
  pass

class StorageError(InternalError):
  """Storage backend read or write failure"""
  def __init__(self, operation: str, message: str = None):
    self.operation = operation
    super().__init__(message or f"Storage operation '{operation}' failed")
