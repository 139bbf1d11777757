# inventory/mock_data.py

import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from inventory.models import Product

CATEGORIES = [
  "Electronics",
  "Clothing",
  "Home & Kitchen",
  "Books",
  "Sports & Outdoors",
  "Beauty & Personal Care",
  "Toys & Games",
  "Automotive",
  "Health & Wellness",
  "Office Supplies",
]

ADJECTIVES = [
  "Small", "Ergonomic", "Rustic", "Intelligent", "Gorgeous", "Incredible", "Fantastic",
  "Practical", "Sleek", "Awesome", "Generic", "Handcrafted", "Refined", "Licensed",
]
MATERIALS = [
  "Steel", "Wooden", "Concrete", "Plastic", "Cotton", "Granite", "Rubber",
  "Metal", "Soft", "Fresh", "Frozen", "Bronze", "Ceramic", "Silk",
]
NOUNS = [
  "Chair", "Car", "Computer", "Keyboard", "Mouse", "Bike", "Ball", "Gloves",
  "Pants", "Shirt", "Table", "Shoes", "Hat", "Towels", "Soap", "Lamp", "Bottle",
]
FEATURES = [
  "designed for everyday comfort",
  "built to last with premium materials",
  "with a modern and minimal finish",
  "ideal for home and office use",
  "engineered for peak performance",
  "tested by thousands of happy customers",
]

IMAGE_URL = "https://picsum.photos/seed/{seed}/640/480"


def generate_product(product_id: int, rng: random.Random, now: datetime) -> Product:
  adjective, material, noun = rng.choice(ADJECTIVES), rng.choice(MATERIALS), rng.choice(NOUNS)
  created_at = now - timedelta(seconds=rng.randint(0, 365 * 24 * 3600))
  updated_at = created_at + (now - created_at) * rng.random()

  return Product(
    id=product_id,
    title=f"{adjective} {material} {noun}",
    price=round(rng.uniform(5, 1000), 2),
    description=f"The {adjective.lower()} {noun.lower()} made of {material.lower()}, {rng.choice(FEATURES)}.",
    category=rng.choice(CATEGORIES),
    images=[IMAGE_URL.format(seed=f"{product_id}-{i}") for i in range(rng.randint(1, 5))],
    created_at=created_at,
    updated_at=updated_at,
  )


def generate_mock_products(count: int, rng: Optional[random.Random] = None) -> List[Product]:
  """Generate `count` products with dense ids 1..count."""
  rng = rng or random.Random()
  now = datetime.now(timezone.utc)
  return [generate_product(i, rng, now) for i in range(1, count + 1)]
