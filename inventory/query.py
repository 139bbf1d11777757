# inventory/query.py

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from inventory.logger import get_logger
from inventory.models import Product, ProductPage, Pagination

log = get_logger(__name__)

DEFAULT_LIMIT = 10
DEFAULT_OFFSET = 0
DEFAULT_SORT = "id"
DEFAULT_ORDER = "asc"


@dataclass(frozen=True)
class ProductQuery:
  limit: int = DEFAULT_LIMIT
  offset: int = DEFAULT_OFFSET
  sort: str = DEFAULT_SORT
  order: str = DEFAULT_ORDER
  categories: Optional[frozenset] = None
  min_price: Optional[float] = None
  max_price: Optional[float] = None
  search: Optional[str] = None

  @classmethod
  def from_params(
      cls,
      limit: Optional[str] = None,
      offset: Optional[str] = None,
      sort: Optional[str] = None,
      order: Optional[str] = None,
      category: Optional[str] = None,
      min_price: Optional[str] = None,
      max_price: Optional[str] = None,
      search: Optional[str] = None
  ) -> "ProductQuery":
    """
    Build a query from raw query string values.
    Malformed numbers fall back to defaults (limit, offset) or to no filter (prices).
    """
    return cls(
      limit=_parse_int(limit, DEFAULT_LIMIT),
      offset=max(_parse_int(offset, DEFAULT_OFFSET), 0),
      sort=sort or DEFAULT_SORT,
      order=order or DEFAULT_ORDER,
      # No trimming: "Books, Toys" only matches "Books" and " Toys"
      categories=frozenset(category.split(",")) if category else None,
      min_price=_parse_float(min_price),
      max_price=_parse_float(max_price),
      search=search,
    )


def filter_products(products: Iterable[Product], query: ProductQuery) -> List[Product]:
  """Apply category, price range and search filters. All filters must match."""
  products = list(products)

  if query.categories is not None:
    products = [p for p in products if p.category in query.categories]

  if query.min_price is not None:
    products = [p for p in products if p.price >= query.min_price]
  if query.max_price is not None:
    products = [p for p in products if p.price <= query.max_price]

  if query.search is not None:
    term = query.search.lower()
    products = [p for p in products if term in p.title.lower() or term in p.description.lower()]

  return products


def sort_products(products: Sequence[Product], sort_by: str = DEFAULT_SORT, order: str = DEFAULT_ORDER) -> List[Product]:
  """
  Sort products by 'price', 'title' or id (any other value).

  Args:
    products (Sequence[Product]): Products to sort.
    sort_by (str): Attribute to sort by.
    order (str): 'desc' for descending, anything else is ascending.

  Returns:
    List[Product]: New list, stable for equal keys in both orders.
  """
  if sort_by == "price":
    key_func = lambda p: p.price
  elif sort_by == "title":
    key_func = lambda p: (p.title.casefold(), p.title)
  else:
    key_func = lambda p: p.id

  return sorted(products, key=key_func, reverse=(order == "desc"))


def paginate(products: Sequence[Product], limit: int, offset: int) -> List[Product]:
  if limit <= 0:
    return []
  return list(products[offset:offset + limit])


def total_pages(total: int, limit: int) -> int:
  if limit <= 0:
    return 0
  return math.ceil(total / limit)


def run_query(products: Iterable[Product], query: ProductQuery) -> ProductPage:
  """Filter, sort and paginate the catalog snapshot."""
  filtered = filter_products(products, query)
  ordered = sort_products(filtered, query.sort, query.order)
  page = paginate(ordered, query.limit, query.offset)
  log.debug(f"Query {query} matched {len(filtered)} products, returning {len(page)}")

  return ProductPage(
    products=page,
    pagination=Pagination(
      total=len(filtered),
      limit=query.limit,
      offset=query.offset,
      total_pages=total_pages(len(filtered), query.limit),
    ),
  )


def _parse_int(value: Optional[str], default: int) -> int:
  if value is None:
    return default
  try:
    return int(value.strip())
  except (ValueError, AttributeError):
    return default


def _parse_float(value: Optional[str]) -> Optional[float]:
  if value is None or value == "":
    return None
  try:
    number = float(value)
  except (ValueError, TypeError):
    return None
  if not math.isfinite(number):
    return None
  return number
