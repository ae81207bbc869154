"""
Keyword relevance scoring for the product catalog.

Products are ranked by where the query terms appear: a hit in the product
name outweighs a category hit, which outweighs a subcategory hit, which
outweighs a description hit. Merchandising flags add a small bonus so that
promoted products surface first among otherwise equal matches.
"""
from typing import Any, Dict, List, Mapping, Optional

NAME_PREFIX_POINTS = 100
NAME_CONTAINS_POINTS = 80
CATEGORY_EXACT_POINTS = 60
CATEGORY_CONTAINS_POINTS = 40
SUBCATEGORY_EXACT_POINTS = 50
SUBCATEGORY_CONTAINS_POINTS = 30
DESCRIPTION_POINTS = 20

ALL_TERMS_BONUS = 30
TOP_PRODUCT_BONUS = 10
MOST_SELLING_BONUS = 15
MIN_MATCH_RATIO = 0.5


def tokenize(query: str) -> List[str]:
    """Lowercase the query and split it on whitespace, dropping empty tokens."""
    if not query:
        return []
    return query.lower().split()


def _field(product: Mapping[str, Any], name: str) -> str:
    value = product.get(name)
    if not isinstance(value, str):
        return ""
    return value.lower()


def compute_score(query: str, product: Mapping[str, Any]) -> float:
    """
    Scores a single product against a free-text query.

    Every term is checked against name, category, subcategory and
    description independently, so one term can earn points from several
    fields. ``matched_terms`` counts field hits rather than distinct terms,
    which makes the all-terms bonus easier to reach for short queries.
    Returns 0 when nothing matched or the query is blank.
    """
    terms = tokenize(query)
    if not terms:
        return 0

    name = _field(product, "name")
    category = _field(product, "category")
    subcategory = _field(product, "subcategory")
    description = _field(product, "description")

    score = 0.0
    matched_terms = 0

    for term in terms:
        # Name match (highest priority)
        if term in name:
            score += NAME_PREFIX_POINTS if name.startswith(term) else NAME_CONTAINS_POINTS
            matched_terms += 1

        if term in category:
            score += CATEGORY_EXACT_POINTS if category == term else CATEGORY_CONTAINS_POINTS
            matched_terms += 1

        if term in subcategory:
            score += SUBCATEGORY_EXACT_POINTS if subcategory == term else SUBCATEGORY_CONTAINS_POINTS
            matched_terms += 1

        if term in description:
            score += DESCRIPTION_POINTS
            matched_terms += 1

    if matched_terms >= len(terms):
        score += ALL_TERMS_BONUS

    # Merchandising bonuses stack
    if product.get("isTopProduct") or product.get("featured"):
        score += TOP_PRODUCT_BONUS
    if product.get("isMostSelling"):
        score += MOST_SELLING_BONUS

    match_ratio = matched_terms / len(terms)
    if match_ratio < MIN_MATCH_RATIO:
        score *= match_ratio

    return score


def rank_products(
    query: str,
    products: List[Mapping[str, Any]],
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Returns copies of the matching products with a ``searchScore`` field,
    best match first. Products scoring 0 are dropped; ties keep catalog order.
    """
    scored: List[Dict[str, Any]] = []
    for product in products:
        score = compute_score(query, product)
        if score > 0:
            hit = dict(product)
            hit["searchScore"] = score
            scored.append(hit)

    scored.sort(key=lambda p: p["searchScore"], reverse=True)
    if limit is not None:
        scored = scored[:max(limit, 0)]
    return scored
