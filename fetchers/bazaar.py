# fetchers/bazaar.py
import datetime
import logging
import os
import re
from pathlib import Path
from typing import List, Optional, Sequence

import requests
from bs4 import BeautifulSoup
from bs4.element import Tag

from core.logger import get_logger
from core.models import ResultRow, SearchTerm
from core.query import DEFAULT_BASE_URL, build_url

logger = get_logger(__name__)

USER_AGENT = os.getenv(
    "BAZAAR_USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
)
PROXY_URL = os.getenv("BAZAAR_PROXY_URL", "").strip()
TIMEOUT = float(os.getenv("BAZAAR_TIMEOUT", "30"))
DEBUG_DIR = Path(os.getenv("BAZAAR_DEBUG_DIR", "bazaar_debug"))

# The bazaar renders its hits as one highlighted table
RESULT_TABLE_SELECTOR = "table.CB_Table.CB_Highlight_Rows"

SESSION = requests.Session()
SESSION.headers.update({"User-Agent": USER_AGENT})
if PROXY_URL:
    SESSION.proxies.update({"http": PROXY_URL, "https": PROXY_URL})


class BazaarError(Exception):
    """The bazaar page could not be fetched or did not look like a result page."""


def _dump_html(query_id: str, html: str) -> None:
    """Keep a copy of an unexpected page when DEBUG logging is enabled."""
    if not logger.isEnabledFor(logging.DEBUG):
        return

    timestamp = datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%d_%H%M%S")
    safe = re.sub(r"[^A-Za-z0-9_.-]+", "_", query_id) or "unknown"
    path = DEBUG_DIR / f"bazaar_{safe}_{timestamp}.html"
    try:
        DEBUG_DIR.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")
        logger.debug("Dumped bazaar HTML to %s", path)
    except OSError as exc:
        logger.debug("Failed to dump bazaar HTML to %s: %s", path, exc)


def fetch_page(url: str) -> str:
    resp = SESSION.get(url, timeout=TIMEOUT)
    if resp.status_code != 200:
        raise BazaarError(f"Bad status code {resp.status_code}")
    return resp.text


def _row_cells(tr: Tag) -> List[str]:
    return [td.get_text().strip() for td in tr.find_all("td", recursive=False)]


def extract_rows(query_id: str, html: str) -> List[ResultRow]:
    """
    Pull listing rows out of a bazaar result page.

    Raises BazaarError when the result table is missing. Rows without data
    cells (headers, spacers) are dropped.
    """
    soup = BeautifulSoup(html, "html.parser")
    table = soup.select_one(RESULT_TABLE_SELECTOR)
    if table is None:
        raise BazaarError(f"No result table matching '{RESULT_TABLE_SELECTOR}'")

    rows: List[ResultRow] = []
    for tr in table.find_all("tr"):
        cells = _row_cells(tr)
        if not cells:
            continue
        rows.append(ResultRow(query_id=query_id, cells=tuple(cells)))
    return rows


def query_bazaar(
    query_id: str,
    terms: Sequence[SearchTerm],
    base_url: str = DEFAULT_BASE_URL,
) -> Optional[List[ResultRow]]:
    """
    Run one bazaar search.

    Returns the matching rows (possibly empty), or None when the page could
    not be fetched or parsed. None must not be mistaken for "no listings".
    """
    url = build_url(terms, base_url)
    logger.debug("queryID=%s querying bazaar for %s", query_id, list(terms))
    logger.debug("queryID=%s query URL: %s", query_id, url)

    try:
        html = fetch_page(url)
    except (requests.RequestException, BazaarError) as e:
        logger.error("queryID=%s bazaar fetch failed for %s: %s", query_id, url, e)
        return None

    try:
        rows = extract_rows(query_id, html)
    except BazaarError as e:
        logger.error("queryID=%s unexpected bazaar page at %s: %s", query_id, url, e)
        _dump_html(query_id, html)
        return None

    logger.debug("queryID=%s bazaar search found %d results: %s", query_id, len(rows), rows)
    return rows
