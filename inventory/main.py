# inventory/main.py

import re
from contextlib import asynccontextmanager
from typing import Callable, List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from inventory.catalog import ProductCatalog
from inventory.config import Settings, get_settings
from inventory.exceptions import InventoryError, NotFoundError
from inventory.guard import KeyGuard, API_KEY_HEADER, require_master_key
from inventory.key_store import KeyStore, now_ms
from inventory.logger import configure_logging, get_logger
from inventory.models import (
  ApiKeyOut, GenerateKeyIn, Message, Product, ProductPage,
  RegenerateIn, RegenerateOut, RevokeKeyIn, RevokeOut,
)
from inventory.query import ProductQuery, run_query
from inventory.storage import Storage, create_storage

configure_logging()

log = get_logger(__name__)

# Reachable without an API key
EXEMPT_PATHS = {
  "/",
  "/health",
  "/api/auth/generate-key",
  "/api/auth/revoke-key",
  "/docs",
  "/docs/oauth2-redirect",
  "/redoc",
  "/openapi.json",
}

PRODUCT_ID_PATTERN = re.compile(r"[0-9]+")

def _error_response(exc: InventoryError) -> JSONResponse:
  return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[Storage] = None,
    clock: Optional[Callable[[], int]] = None
) -> FastAPI:
  """
  Build the inventory API with its own catalog and key store.

  Args:
    settings: Settings : defaults to get_settings()
    storage: Storage : defaults to the backend selected by settings.storage_backend
    clock: Callable[[], int] : epoch milliseconds source for key expiry
  """
  settings = settings or get_settings()
  storage = storage or create_storage(settings)
  key_store = KeyStore(storage, clock=clock or now_ms)
  catalog = ProductCatalog(storage, default_count=settings.default_product_count)

  @asynccontextmanager
  async def lifespan(app: FastAPI):
    # Application startup
    storage.init()
    key_store.load()
    catalog.load_or_initialize()
    log.info(f"Inventory API ready: {len(catalog)} products, {len(key_store)} API keys, storage={type(storage).__name__}")
    if not settings.master_key:
      log.warning("MASTER_KEY is not set, key issuance and regeneration are disabled")
    yield

  app = FastAPI(title="Product Inventory API",
                lifespan=lifespan,
                description="A mock API for product inventory with time-bound API keys.",
                version="1.0.0")

  app.state.settings = settings
  app.state.storage = storage
  app.state.key_store = key_store
  app.state.guard = KeyGuard(key_store)
  app.state.catalog = catalog

  @app.middleware("http")
  async def api_key_guard(request: Request, call_next):
    if request.url.path not in EXEMPT_PATHS:
      try:
        await run_in_threadpool(request.app.state.guard.check, request.headers.get(API_KEY_HEADER))
      except InventoryError as e:
        return _error_response(e)
    return await call_next(request)

  # Added after the guard so it wraps it: preflight requests carry no API key
  app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", API_KEY_HEADER],
  )

  @app.exception_handler(InventoryError)
  async def inventory_exception_handler(request: Request, exc: InventoryError):
    if exc.status_code >= 500:
      log.error(f"[API] {request.method} {request.url.path} failed: {exc}", exc_info=exc)
    return _error_response(exc)

  @app.exception_handler(RequestValidationError)
  async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    detail = "; ".join(f"{'.'.join(str(part) for part in e['loc'])}: {e['msg']}" for e in errors)
    log.info(f"[API] Invalid request to {request.url.path}: {detail}")
    return JSONResponse(status_code=400, content={"message": f"Invalid request: {detail}"})

  @app.exception_handler(StarletteHTTPException)
  async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=exc.headers)

  @app.exception_handler(Exception)
  async def global_exception_handler(request: Request, exc: Exception):
    log.error(f"Global Exception Unhandled Exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal Server Error"},
    )

  @app.post("/api/auth/generate-key", response_model=ApiKeyOut)
  def generate_key(payload: Optional[GenerateKeyIn] = None):
    """Issue a time-bound API key. Requires the master key."""
    payload = payload or GenerateKeyIn()
    require_master_key(payload.master_key, settings.master_key)

    record = key_store.issue(payload.expires_in)
    return ApiKeyOut(api_key=record.key, expires_at=record.expires_at_iso)

  @app.post("/api/auth/revoke-key", response_model=RevokeOut)
  def revoke_key(payload: RevokeKeyIn):
    """Revoke an API key. Requires the master key, unknown keys are not an error."""
    require_master_key(payload.master_key, settings.master_key)

    revoked = key_store.revoke(payload.api_key)
    return RevokeOut(message="API key revoked" if revoked else "API key not found", revoked=revoked)

  @app.get("/api/products", response_model=ProductPage)
  def list_products(
    limit: Optional[str] = Query(None, description="Number of products to return per page (default 10)"),
    offset: Optional[str] = Query(None, description="Number of products to skip (default 0)"),
    sort: Optional[str] = Query(None, description="Field to sort by: price, title or id"),
    order: Optional[str] = Query(None, description="Sort order: asc or desc"),
    category: Optional[str] = Query(None, description="Filter by category (comma-separated for multiple)"),
    min_price: Optional[str] = Query(None, alias="minPrice", description="Minimum price, inclusive"),
    max_price: Optional[str] = Query(None, alias="maxPrice", description="Maximum price, inclusive"),
    search: Optional[str] = Query(None, description="Search in title and description")
  ):
    """
    List products with filtering, sorting and pagination.
    Malformed numeric parameters are ignored rather than rejected.
    """
    query = ProductQuery.from_params(
      limit=limit, offset=offset, sort=sort, order=order,
      category=category, min_price=min_price, max_price=max_price, search=search,
    )
    return run_query(catalog.all(), query)

  @app.get("/api/products/{product_id}", response_model=Product)
  def get_product(product_id: str):
    if not PRODUCT_ID_PATTERN.fullmatch(product_id):
      raise NotFoundError("Product not found")
    return catalog.get_by_id(int(product_id))

  @app.get("/api/categories", response_model=List[str])
  def list_categories():
    return catalog.list_categories()

  @app.post("/api/admin/regenerate-products", response_model=RegenerateOut)
  def regenerate_products(payload: Optional[RegenerateIn] = None):
    """Replace the whole catalog with freshly generated products. Requires the master key."""
    payload = payload or RegenerateIn()
    require_master_key(payload.master_key, settings.master_key)

    count = catalog.regenerate(payload.count)
    return RegenerateOut(message="Products regenerated successfully", count=count)

  @app.get("/", response_model=Message)
  def root():
    return Message(message="Product Inventory API - endpoints: /api/products, /api/products/{id}, /api/categories")

  @app.get("/health")
  def healthcheck():
    return {"status": "ok", "products": len(catalog), "apiKeys": len(key_store)}

  return app


app = create_app()
