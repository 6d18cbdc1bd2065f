"""Shared fixtures for the bazaar server tests."""

import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

# Modules live at the repository root
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from core.config import Settings
from core.models import ResultRow, SearchTerm


def bazaar_page(rows: Sequence[Sequence[str]], with_table: bool = True) -> str:
    """Render a page shaped like the bazaar search results."""
    if not with_table:
        return "<html><body><p>Service unavailable</p></body></html>"
    body = ["<tr><th>Item</th><th>Price</th><th>Seller</th></tr>"]
    for cells in rows:
        body.append("<tr>" + "".join(f"<td> {c} </td>" for c in cells) + "</tr>")
    return (
        "<html><body>"
        "<table class='CB_Table CB_Highlight_Rows'>"
        + "".join(body)
        + "</table></body></html>"
    )


def write_ini(path: Path, poll=None, monitor: Optional[Dict[str, str]] = None,
              queries: Optional[Dict[str, str]] = None) -> Path:
    lines = []
    if poll is not None:
        lines += ["[General]", f"Monitor Server Poll (seconds)={poll}", ""]
    if monitor is not None:
        lines.append("[Monitor]")
        lines += [f"{k}={v}" for k, v in monitor.items()]
        lines.append("")
    if queries is not None:
        lines.append("[Queries]")
        lines += [f"{k}={v}" for k, v in queries.items()]
        lines.append("")
    path.write_text("\n".join(lines), encoding="utf-8")
    return path


class FakeBazaar:
    """Stands in for query_bazaar; answers from a name -> rows table."""

    def __init__(self):
        self.calls: List[Tuple[str, List[SearchTerm]]] = []
        self.listings: Dict[str, List[Tuple[str, ...]]] = {}
        self.failing: set = set()

    def __call__(self, query_id: str, terms: Sequence[SearchTerm]):
        terms = list(terms)
        self.calls.append((query_id, terms))
        name = next((t.value for t in terms if t.key == "Name"), "")
        if name in self.failing:
            return None
        return [ResultRow(query_id=query_id, cells=cells) for cells in self.listings.get(name, [])]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        config_dir=str(tmp_path),
        query_delay=0,
        watch_interval=0.1,
    )


@pytest.fixture
def fake_bazaar() -> FakeBazaar:
    return FakeBazaar()
