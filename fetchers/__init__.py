# fetchers/__init__.py
from .bazaar import BazaarError, query_bazaar

__all__ = ["BazaarError", "query_bazaar"]
