"""Title relevance ranking for stored conversations.

A BM25 variant where a query term matches anywhere inside the field as a
case-insensitive substring instead of as a whole token. Partial words
("auth" in "authentication") and punctuation-bearing terms ("c++") match.
"""

import math
from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

from .models import BM25Parameters, SearchHit

T = TypeVar("T")


def field_value(record: Any, field: str) -> str:
    """Return ``field`` of a record as text.

    Looks in ``record.metadata`` first (history listings keep their title
    there), then on the record itself. Works for mappings and objects;
    a missing field reads as "".
    """
    if isinstance(record, Mapping):
        metadata = record.get("metadata")
        if isinstance(metadata, Mapping) and field in metadata:
            value = metadata[field]
        else:
            value = record.get(field)
    else:
        metadata = getattr(record, "metadata", None)
        if metadata is not None and hasattr(metadata, field):
            value = getattr(metadata, field)
        else:
            value = getattr(record, field, None)
    return "" if value is None else str(value)


def tokenize_query(query: str) -> list[str]:
    return [term for term in query.lower().split() if term]


class RelevanceSearch:
    """Ranks title-bearing records against a query."""

    def __init__(self, field: str = "title", params: BM25Parameters | None = None):
        self._field = field
        self._params = params or BM25Parameters()

    @property
    def field(self) -> str:
        return self._field

    def score(self, query: str, records: Sequence[T]) -> list[SearchHit]:
        """Score every record.

        Args:
            query: Free-text query
            records: Records to rank

        Returns:
            One hit per record, in input order
        """
        terms = tokenize_query(query)
        values = [field_value(record, self._field).lower() for record in records]
        total = len(values)
        avg_length = sum(len(value) for value in values) / (total or 1)
        k1, b = self._params.k1, self._params.b

        document_frequency: dict[str, int] = {}
        hits = []
        for record, value in zip(records, values):
            score = 0.0
            matched = 0
            for term in terms:
                frequency = value.count(term)
                if frequency == 0:
                    continue
                matched += 1
                if term not in document_frequency:
                    document_frequency[term] = sum(1 for other in values if term in other)
                idf = math.log((total + 1) / (document_frequency[term] + 1))
                numerator = frequency * (k1 + 1)
                denominator = frequency + k1 * (1 - b + b * (len(value) / avg_length))
                score += idf * (numerator / denominator)
            hits.append(SearchHit(item=record, score=score, matched_terms=matched))
        return hits

    def search(self, query: str, records: Sequence[T]) -> list[T]:
        """Return matching records, best first.

        An empty or whitespace-only query returns ``records`` unchanged.
        Records no query term occurs in are dropped. A term present in every
        record has zero idf; such records are kept with score 0. Ties keep
        input order.
        """
        if not query.strip() or not tokenize_query(query):
            return list(records)

        hits = [hit for hit in self.score(query, records) if hit.matched_terms > 0]
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return [hit.item for hit in hits]


def bm25_search(query: str, records: Sequence[T], field: str = "title") -> list[T]:
    """Rank ``records`` by relevance of ``field`` to ``query``."""
    return RelevanceSearch(field=field).search(query, records)
