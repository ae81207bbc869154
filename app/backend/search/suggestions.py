"""
Autocomplete helpers for the storefront search box.

Suggestions are pulled straight out of the products that match what the
user has typed so far: whole words from product names, plus category and
subcategory labels. Popular terms are a frequency count over a product
sample and back the "try searching for" hints shown on an empty search.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping

from config import SUGGESTION_MIN_LENGTH

logger = logging.getLogger(__name__)

CATEGORY_WEIGHT = 2.0
SUBCATEGORY_WEIGHT = 1.5
NAME_WORD_WEIGHT = 1.0


def extract_suggestions(
    query: str,
    products: Iterable[Mapping[str, Any]],
    limit: int,
) -> List[str]:
    """
    Collects distinct suggestion strings in the order they are found:
    product by product, name words first, then category, then subcategory.
    A name word equal to the query itself is skipped so the user's own
    input is never echoed back. Category labels keep their original casing.
    """
    query_lower = (query or "").strip().lower()
    if not query_lower or limit <= 0:
        return []

    # dict keeps insertion order and doubles as a set
    suggestions: Dict[str, None] = {}

    for product in products:
        name = product.get("name")
        if isinstance(name, str):
            for word in name.lower().split():
                if word.startswith(query_lower) and word != query_lower:
                    suggestions.setdefault(word, None)

        category = product.get("category")
        if isinstance(category, str) and query_lower in category.lower():
            suggestions.setdefault(category, None)

        subcategory = product.get("subcategory")
        if isinstance(subcategory, str) and query_lower in subcategory.lower():
            suggestions.setdefault(subcategory, None)

    return list(suggestions)[:limit]


def suggest(
    query: str,
    fetch_products: Callable[[str, int], List[Mapping[str, Any]]],
    limit: int,
) -> List[str]:
    """
    Boundary wrapper used by the API. Queries shorter than the minimum
    length get no suggestions. Candidates are fetched through
    ``fetch_products(query, count)``; any failure there or during
    extraction is logged and turned into an empty list.
    """
    if not query or len(query.strip()) < SUGGESTION_MIN_LENGTH:
        return []

    query = query.strip()
    try:
        # Over-fetch so that duplicate words still leave enough suggestions
        products = fetch_products(query, limit * 2)
        return extract_suggestions(query, products, limit)
    except Exception:
        logger.exception("Error building suggestions for '%s'", query)
        return []


def popular_terms(products: Iterable[Mapping[str, Any]], limit: int) -> List[str]:
    """
    Ranks lowercased name words (longer than two characters), categories
    and subcategories by weighted frequency across ``products``.
    """
    if limit <= 0:
        return []

    weights: Dict[str, float] = {}

    for product in products:
        name = product.get("name")
        if isinstance(name, str):
            for word in name.lower().split():
                if len(word) > 2:
                    weights[word] = weights.get(word, 0.0) + NAME_WORD_WEIGHT

        category = product.get("category")
        if isinstance(category, str) and category:
            key = category.lower()
            weights[key] = weights.get(key, 0.0) + CATEGORY_WEIGHT

        subcategory = product.get("subcategory")
        if isinstance(subcategory, str) and subcategory:
            key = subcategory.lower()
            weights[key] = weights.get(key, 0.0) + SUBCATEGORY_WEIGHT

    # sorted() is stable, so equal weights stay in first-seen order
    ranked = sorted(weights.items(), key=lambda x: x[1], reverse=True)
    return [term for term, _ in ranked[:limit]]
