from .engine import RelevanceSearch, bm25_search, field_value
from .models import BM25Parameters, SearchHit

__all__ = [
    "BM25Parameters",
    "RelevanceSearch",
    "SearchHit",
    "bm25_search",
    "field_value",
]
