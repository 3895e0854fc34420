"""
Fuzzy Matcher

Approximate string matching over small static candidate sets (destination
cities, take-off parks). Scores come from rapidfuzz WRatio, which blends
edit-distance and token-based ratios, so partial input ("lag") and typos
("Ikeja Bus Terminl") both match.
"""

from operator import attrgetter
from typing import Callable, Sequence, TypeVar

from rapidfuzz import fuzz, utils

from common.config import DESTINATION_CITIES, FUZZY_DEFAULT_LIMIT, FUZZY_SCORE_THRESHOLD
from common.logging_config import get_logger
from common.types import PARKS, Park

logger = get_logger("fuzzy_matcher")

T = TypeVar("T")

# A key is an attribute name or a callable returning the text to match
KeySelector = str | Callable[[T], str]

PARK_KEYS: list[str] = ["name", "address", "city"]


def _selector(key: KeySelector) -> Callable[[T], str]:
    if callable(key):
        return key
    return attrgetter(key)


def score(query: str, text: str | None) -> float:
    """Similarity 0-100 between query and text after case/punctuation folding."""
    if not text:
        return 0.0
    return fuzz.WRatio(query, text, processor=utils.default_process)


def match(
    query: str,
    candidates: Sequence[T],
    keys: list[KeySelector] | None = None,
    threshold: float = FUZZY_SCORE_THRESHOLD,
    limit: int | None = FUZZY_DEFAULT_LIMIT,
) -> list[T]:
    """
    Rank candidates by approximate match against the query.

    Args:
        query: User-typed text
        candidates: Items to search
        keys: Field selectors; the best-scoring key wins for each item.
            None matches the items themselves (for plain strings).
        threshold: Minimum score (0-100) to keep an item
        limit: Maximum results, None for all

    Returns:
        Matching items, best first. Ties keep their input order.
        An empty query returns the first `limit` items unranked.
    """
    query = (query or "").strip()
    if not query:
        return list(candidates[:limit] if limit is not None else candidates)

    selectors = [_selector(key) for key in keys] if keys else [str]

    scored: list[tuple[float, T]] = []
    for item in candidates:
        best = max(score(query, selector(item)) for selector in selectors)
        if best >= threshold:
            scored.append((best, item))

    # sorted() is stable, so equal scores keep candidate order
    scored.sort(key=lambda pair: pair[0], reverse=True)
    results = [item for _, item in scored]

    logger.debug(f"Fuzzy match '{query}': {len(results)}/{len(candidates)} above {threshold}")
    return results[:limit] if limit is not None else results


def match_parks(query: str, parks: Sequence[Park] = PARKS, limit: int | None = FUZZY_DEFAULT_LIMIT) -> list[Park]:
    """Match against park name, address and city."""
    return match(query, parks, keys=PARK_KEYS, limit=limit)


def match_cities(
    query: str, cities: Sequence[str] = tuple(DESTINATION_CITIES), limit: int | None = FUZZY_DEFAULT_LIMIT
) -> list[str]:
    """Match against the destination city list."""
    return match(query, cities, limit=limit)
