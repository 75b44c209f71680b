# functions/utils/catalog.py
"""
Product catalog: maps store product identifiers to the credits they grant.
"""
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from utils import DEFAULT_PRODUCT_CREDITS


class ProductCatalog:
    """Immutable productId -> credits table."""

    def __init__(self, products: Mapping[str, int]):
        for product_id, credits in products.items():
            if not product_id:
                raise ValueError("Product id cannot be empty")
            if isinstance(credits, bool) or not isinstance(credits, int) or credits <= 0:
                raise ValueError(f"Credits for {product_id} must be a positive integer")
        self._products = MappingProxyType(dict(products))

    def credits_for(self, product_id: Optional[str]) -> int:
        """Credits granted by a product; 0 for unknown products."""
        if not product_id:
            return 0
        return self._products.get(product_id, 0)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._products

    def __iter__(self) -> Iterator[str]:
        return iter(self._products)

    def __len__(self) -> int:
        return len(self._products)

    def as_dict(self) -> dict:
        return dict(self._products)


default_catalog = ProductCatalog(DEFAULT_PRODUCT_CREDITS)
