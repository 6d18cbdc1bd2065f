# core/query.py
from typing import Iterable
from urllib.parse import quote_plus

from .models import SearchTerm

DEFAULT_BASE_URL = "https://www.lazaruseq.com/Magelo/index.php?page=bazaar"

# Term key -> bazaar search form parameter
QUERY_PARAMS = {
    "Name": "item",
    "Class": "class",
    "Race": "race",
    "Stat": "stat",
    "Slot": "slot",
    "Aug": "aug_type",
    "Type": "type",
    "PriceMin": "pricemin",
    "PriceMax": "pricemax",
    "Direction": "direction",
}


def build_query(terms: Iterable[SearchTerm]) -> str:
    """
    Translate search terms into bazaar query parameters, keeping input order.
    Keys without a parameter mapping are skipped silently.
    """
    parts = []
    for term in terms:
        param = QUERY_PARAMS.get(term.key)
        if param is None:
            continue
        parts.append(f"&{param}={quote_plus(term.value)}")
    return "".join(parts)


def build_url(terms: Iterable[SearchTerm], base_url: str = DEFAULT_BASE_URL) -> str:
    return base_url + build_query(terms)
