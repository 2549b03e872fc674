"""
In-memory relevance search over product documents.
"""
from typing import List, Dict, Any, Tuple

# (field, weight) pairs searched by default
PRODUCT_SEARCH_FIELDS = [
    ("name", 10),
    ("sku", 8),
    ("category", 3),
    ("description", 1),
]


def score_field(query: str, query_tokens: set, value: str, weight: int) -> float:
    """Relevance of one field value against a normalized query."""
    field_value = value.lower()
    score = 0.0

    if query == field_value:
        score += weight * 1.5
    elif field_value.startswith(query):
        score += weight * 1.2
    elif query in field_value:
        score += weight * 1.0

    # Token matches help with different word order and partial words
    for token in query_tokens:
        for field_token in field_value.split():
            if token == field_token:
                score += weight * 0.5
            elif token in field_token:
                score += weight * 0.3

    return score


def search_products(
    products: List[Dict[str, Any]],
    query: str,
    fields: List[Tuple[str, int]] = None
) -> List[Tuple[Dict[str, Any], float]]:
    """
    Rank products by how well their text fields match the query.

    Args:
        products: Product dictionaries, each with an ``id``
        query: Search query string (case-insensitive)
        fields: (field, weight) pairs to search, PRODUCT_SEARCH_FIELDS by default

    Returns:
        List of (product, relevance_score) tuples, highest score first.
        Products with no match are left out; equal scores keep input order.
    """
    if fields is None:
        fields = PRODUCT_SEARCH_FIELDS

    query = query.lower().strip()
    if not query:
        return []

    query_tokens = set(query.split())
    query_tokens.add(query)

    results = {}
    for product in products:
        if not product or not product.get('id'):
            continue

        relevance_score = 0.0
        for field, weight in fields:
            value = product.get(field)
            if not value or not isinstance(value, str):
                continue
            relevance_score += score_field(query, query_tokens, value, weight)

        if relevance_score > 0:
            results[product['id']] = (product, relevance_score)

    return sorted(results.values(), key=lambda x: x[1], reverse=True)
