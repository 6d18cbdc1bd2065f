# core/dedup.py
import threading
from typing import Dict, List, Mapping, Tuple


class DedupCache:
    """
    Request ID -> last raw request string, guarded by one lock.

    A non-empty value means the exact content has already been handed to the
    bazaar. Callers only ever see copies, never the underlying dict.
    """

    def __init__(self):
        self._entries: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, query_id: str) -> str:
        with self._lock:
            return self._entries.get(query_id, "")

    def put(self, query_id: str, content: str) -> None:
        with self._lock:
            self._entries[query_id] = content

    def clear(self) -> None:
        with self._lock:
            self._entries = {}

    def replace(self, entries: Mapping[str, str]) -> None:
        with self._lock:
            self._entries = dict(entries)

    def snapshot(self) -> List[Tuple[str, str]]:
        with self._lock:
            return list(self._entries.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, query_id: str) -> bool:
        return self.get(query_id) != ""
