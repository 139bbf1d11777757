# inventory/catalog.py

from typing import Dict, List, Tuple

from inventory.exceptions import NotFoundError
from inventory.logger import get_logger
from inventory.mock_data import generate_mock_products
from inventory.models import Product
from inventory.storage import Storage

log = get_logger(__name__)

DEFAULT_PRODUCT_COUNT = 100


class ProductCatalog:
  """
  In-memory product collection backed by a storage collaborator.

  The collection is an immutable tuple swapped in a single assignment, so a
  reader sees either the old or the new generation, never a mix.
  """

  def __init__(self, storage: Storage, default_count: int = DEFAULT_PRODUCT_COUNT):
    self.storage = storage
    self.default_count = default_count
    self._products: Tuple[Product, ...] = ()
    self._by_id: Dict[int, Product] = {}

  def __len__(self):
    return len(self._products)

  def all(self) -> Tuple[Product, ...]:
    return self._products

  def load_or_initialize(self) -> int:
    """
    Load persisted products, generating and saving a default set when storage is empty.

    Returns:
      int: number of products now in the catalog
    """
    products = self.storage.load_products()
    if products:
      self._install(products)
      log.info(f"Loaded {len(products)} products from storage")
    else:
      log.info(f"No products in storage, generating {self.default_count} mock products")
      self.replace_all(generate_mock_products(self.default_count))
    return len(self._products)

  def replace_all(self, products: List[Product]):
    # Persist first: a storage failure leaves the previous generation visible
    self.storage.save_products(products)
    self._install(products)
    log.info(f"Catalog replaced with {len(products)} products")

  def regenerate(self, count: int) -> int:
    self.replace_all(generate_mock_products(count))
    return len(self._products)

  def get_by_id(self, product_id: int) -> Product:
    product = self._by_id.get(product_id)
    if product is None:
      raise NotFoundError("Product not found")
    return product

  def list_categories(self) -> List[str]:
    return sorted({p.category for p in self._products})

  def _install(self, products: List[Product]):
    snapshot = tuple(products)
    by_id = {p.id: p for p in snapshot}
    self._products, self._by_id = snapshot, by_id
