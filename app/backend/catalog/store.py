"""
Read-only product catalog backed by a JSON export.

The catalog is loaded once at startup and kept in memory; every listing,
lookup and search in the API reads from it. ``reload()`` swaps in a fresh
copy of the file after the catalog has been re-exported.
"""
import os
import json
import math
import logging
import threading
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

FLAGS = ("isTopProduct", "isMostSelling", "featured")


class CatalogError(Exception):
    """Raised when the catalog file exists but cannot be parsed."""


def _text(product: Dict[str, Any], field: str) -> str:
    value = product.get(field)
    return value.lower() if isinstance(value, str) else ""


def _newest_first(products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # ISO-8601 timestamps sort lexicographically
    return sorted(products, key=lambda p: str(p.get("dateAdded") or ""), reverse=True)


class ProductCatalog:
    def __init__(self, path: Optional[str] = None, products: Optional[List[Dict[str, Any]]] = None):
        self.path = path
        self._lock = threading.Lock()
        self._products: List[Dict[str, Any]] = list(products) if products is not None else []
        self._by_id: Dict[str, Dict[str, Any]] = {}
        self._index()
        self.loaded = products is not None

    def _index(self):
        self._by_id = {str(p["id"]): p for p in self._products if p.get("id") is not None}

    def load(self) -> bool:
        """Load products from ``self.path``. Returns False when the file is missing."""
        if self.path is None:
            return self.loaded
        if not os.path.exists(self.path):
            logger.warning("Catalog file not found at %s. Run catalog ingestion first.", self.path)
            return False

        logger.info("Loading product catalog from %s", self.path)
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise CatalogError(f"Could not read catalog {self.path}: {e}") from e
        if not isinstance(data, list):
            raise CatalogError(f"Catalog {self.path} must contain a JSON array")

        with self._lock:
            self._products = [p for p in data if isinstance(p, dict)]
            self._index()
            self.loaded = True
        logger.info("Catalog loaded: %d products", len(self._products))
        return True

    def reload(self) -> bool:
        return self.load()

    def all(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._products)

    def __len__(self):
        with self._lock:
            return len(self._products)

    def search(self, text: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Case-insensitive substring match over name and description, newest first."""
        needle = (text or "").strip().lower()
        matches = [
            p for p in self.all()
            if not needle or needle in _text(p, "name") or needle in _text(p, "description")
        ]
        matches = _newest_first(matches)
        return matches[:limit] if limit is not None else matches

    def list_products(
        self,
        page: int = 1,
        limit: int = 10,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        products = self.search(search or "")
        if category:
            wanted = category.strip().lower()
            products = [p for p in products if _text(p, "category") == wanted]

        total = len(products)
        start = (page - 1) * limit
        return {
            "products": products[start:start + limit],
            "totalProducts": total,
            "totalPages": math.ceil(total / limit) if limit else 0,
            "currentPage": page,
        }

    def flagged(self, flag: str, limit: int = 6) -> List[Dict[str, Any]]:
        if flag not in FLAGS:
            raise ValueError(f"Unknown product flag: {flag}")
        products = [p for p in self.all() if p.get(flag)]
        return _newest_first(products)[:limit]

    def get(self, product_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._by_id.get(str(product_id))

    def images(self, product_id: str) -> Optional[List[str]]:
        product = self.get(product_id)
        if product is None:
            return None
        return list(product.get("images") or [])

    def categories(self) -> List[Dict[str, Any]]:
        """Distinct categories with their subcategories, in first-seen order."""
        grouped: Dict[str, Dict[str, Any]] = {}
        for product in self.all():
            name = product.get("category")
            if not isinstance(name, str) or not name:
                continue
            entry = grouped.setdefault(name, {"name": name, "subcategories": [], "productCount": 0})
            entry["productCount"] += 1
            sub = product.get("subcategory")
            if isinstance(sub, str) and sub and sub not in entry["subcategories"]:
                entry["subcategories"].append(sub)
        return list(grouped.values())
