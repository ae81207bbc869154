"""
Catalog ingestion: turns a MongoDB ``mongoexport`` dump of the products
collection into the flat JSON array served by the API.

Extended JSON wrappers (``{"$oid": ...}``, ``{"$date": ...}``) are unwrapped,
strings are trimmed, and the merchandising flags are always present as
booleans. ``--seed-flags`` reproduces the one-off repair used when a fresh
database has no homepage products marked.

Usage:
    python -m catalog.ingest products.export.json [data/products.json] [--seed-flags]
"""
import os
import sys
import json
import argparse
from datetime import datetime, timezone
from typing import Any, Dict, List

from config import CATALOG_PATH

FLAGS = ("isTopProduct", "isMostSelling", "featured", "isAvailable")
SEED_COUNT = 3


def _iso_from_millis(millis: float) -> str:
    """Epoch milliseconds to the relaxed-mode mongoexport form, e.g. 2024-01-01T00:00:00.000Z."""
    moment = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _unwrap(value: Any) -> Any:
    """Strip MongoDB extended-JSON wrappers recursively."""
    if isinstance(value, dict):
        if "$oid" in value:
            return str(value["$oid"])
        if "$date" in value:
            date = value["$date"]
            if isinstance(date, dict) and "$numberLong" in date:
                return _iso_from_millis(int(date["$numberLong"]))
            if isinstance(date, (int, float)):
                return _iso_from_millis(date)
            return date
        if "$numberInt" in value:
            return int(value["$numberInt"])
        if "$numberLong" in value:
            return int(value["$numberLong"])
        if "$numberDouble" in value:
            return float(value["$numberDouble"])
        return {k: _unwrap(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_unwrap(v) for v in value]
    return value


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


def normalize_product(raw: Dict[str, Any]) -> Dict[str, Any]:
    product = _unwrap(raw)
    if "_id" in product:
        product["id"] = str(product.pop("_id"))
    product.pop("__v", None)

    for field in ("name", "description", "category", "subcategory"):
        value = product.get(field)
        product[field] = value.strip() if isinstance(value, str) else ""

    for flag in FLAGS:
        default = flag == "isAvailable"
        product[flag] = _as_bool(product.get(flag, default))

    images = product.get("images")
    product["images"] = [i for i in images if isinstance(i, str)] if isinstance(images, list) else []
    return product


def read_export(path: str) -> List[Dict[str, Any]]:
    """Reads either a JSON array (``--jsonArray``) or one document per line."""
    with open(path, "r", encoding="utf-8") as f:
        content = f.read().strip()
    if not content:
        return []
    if content.startswith("["):
        return json.loads(content)
    return [json.loads(line) for line in content.splitlines() if line.strip()]


def seed_flags(products: List[Dict[str, Any]]) -> int:
    """
    If no product is marked for the homepage, mark the first three as top
    products and the next three as most selling. Returns how many changed.
    """
    if any(p["isTopProduct"] or p["isMostSelling"] for p in products):
        return 0
    for p in products[:SEED_COUNT]:
        p["isTopProduct"] = True
    for p in products[SEED_COUNT:SEED_COUNT * 2]:
        p["isMostSelling"] = True
    return min(len(products), SEED_COUNT * 2)


def run_ingestion(src: str, dest: str = CATALOG_PATH, seed: bool = False) -> List[Dict[str, Any]]:
    print(f"Reading export from {src}...")
    raw = read_export(src)
    products = [normalize_product(r) for r in raw if isinstance(r, dict)]
    skipped = len(raw) - len(products)
    missing_id = [p for p in products if "id" not in p]
    if missing_id:
        print(f"  {len(missing_id)} products without an _id were dropped")
        products = [p for p in products if "id" in p]

    print(f"  → {len(products)} products ({skipped} non-object rows skipped)")

    if seed:
        changed = seed_flags(products)
        print(f"  Seeded homepage flags on {changed} products")

    os.makedirs(os.path.dirname(os.path.abspath(dest)), exist_ok=True)
    with open(dest, "w", encoding="utf-8") as f:
        json.dump(products, f, ensure_ascii=False, indent=2)
    print(f"Catalog saved → {dest}")
    return products


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Normalize a mongoexport dump into the catalog JSON.")
    parser.add_argument("src", help="mongoexport output (JSON array or JSON lines)")
    parser.add_argument("dest", nargs="?", default=CATALOG_PATH, help="catalog file to write")
    parser.add_argument("--seed-flags", action="store_true",
                        help="mark homepage products when none are flagged")
    args = parser.parse_args(argv)

    try:
        run_ingestion(args.src, args.dest, seed=args.seed_flags)
    except (OSError, ValueError) as e:
        print(f"Ingestion failed: {e}", file=sys.stderr)
        return 1
    print("\nIngestion complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
