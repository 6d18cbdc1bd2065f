# core/terms.py
import hashlib
from typing import List, Optional

from .models import SearchTerm
from .logger import get_logger

logger = get_logger(__name__)

SEGMENT_SEP = "/"
KEY_VALUE_SEP = "|"

COMPARE_BOUNDS = {
    "<": "PriceMax",
    "<=": "PriceMax",
    ">": "PriceMin",
    ">=": "PriceMin",
}


def parse_terms(raw: str) -> List[SearchTerm]:
    """
    Parse a front-end term string such as "/Name|Cloak of Flames/Slot|131072".

    Segments are separated by "/" and hold "Key|Value". Malformed segments
    are logged and dropped; unknown keys are kept for the translator to skip.
    """
    terms: List[SearchTerm] = []
    for segment in (raw or "").split(SEGMENT_SEP):
        segment = segment.strip()
        if not segment:
            continue
        key, sep, value = segment.partition(KEY_VALUE_SEP)
        key = key.strip()
        if not sep or not key:
            logger.debug("Ignoring malformed search term segment %r", segment)
            continue
        terms.append(SearchTerm(key=key, value=value.strip()))
    return terms


def monitor_terms(item_name: str, raw: str) -> List[SearchTerm]:
    """
    Build the search terms for a monitored item.

    The item name becomes the Name term. "Price" and "Compare" are folded into
    a single PriceMin/PriceMax bound; other terms pass through untouched.
    """
    terms = [SearchTerm(key="Name", value=item_name)]
    price: Optional[str] = None
    bound_key: Optional[str] = None

    for term in parse_terms(raw):
        if term.key == "Name":
            continue
        if term.key == "Price":
            price = term.value
        elif term.key == "Compare":
            bound_key = COMPARE_BOUNDS.get(term.value)
            if bound_key is None:
                logger.warning(
                    "Unknown compare operator %r for monitor item '%s'; ignoring price bound.",
                    term.value, item_name,
                )
        else:
            terms.append(term)

    if price and bound_key:
        terms.append(SearchTerm(key=bound_key, value=price))

    return terms


def derive_query_id(item_name: str) -> str:
    """Stable result key for a monitored item: md5 hex of its name."""
    return hashlib.md5(item_name.encode("utf-8")).hexdigest()
