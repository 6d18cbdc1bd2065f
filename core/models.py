# core/models.py
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

# Keys the front-end may emit in a term string. Price and Compare only make
# sense for monitor entries and are folded into PriceMin/PriceMax.
TERM_KEYS = (
    "Name",
    "Class",
    "Race",
    "Stat",
    "Slot",
    "Aug",
    "Type",
    "PriceMin",
    "PriceMax",
    "Direction",
    "Compare",
    "Price",
)

RESULT_HEADER = ["QueryID", "Item", "Price", "Seller"]


@dataclass(frozen=True)
class SearchTerm:
    key: str
    value: str


@dataclass(frozen=True)
class ResultRow:
    """
    One bazaar listing scraped for a query.
    Cells are the trimmed table columns in page order (Item, Price, Seller).
    """
    query_id: str
    cells: Tuple[str, ...]

    @property
    def item(self) -> str:
        return self.cells[0] if len(self.cells) > 0 else ""

    @property
    def price(self) -> str:
        return self.cells[1] if len(self.cells) > 1 else ""

    @property
    def seller(self) -> str:
        return self.cells[2] if len(self.cells) > 2 else ""

    def as_csv(self) -> List[str]:
        return [self.query_id, *self.cells]


@dataclass(frozen=True)
class BazaarConfig:
    """
    Snapshot of the front-end's request file at one point in time.
    monitor is None when the file has no [Monitor] section.
    """
    poll_delay: int
    monitor: Optional[Dict[str, str]] = None
    queries: Dict[str, str] = field(default_factory=dict)
