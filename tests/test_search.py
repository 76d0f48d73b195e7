"""Unit tests for title relevance search."""
import pytest
from hypothesis import given
from hypothesis import strategies as st

from sgrchat.search import BM25Parameters, RelevanceSearch, bm25_search, field_value
from sgrchat.storage import ChatListing, ChatMetadata


def titled(*titles: str) -> list[dict]:
    return [{"title": title} for title in titles]


class TestFieldValue:
    """Tests for reading the ranked field."""

    def test_plain_mapping(self):
        assert field_value({"title": "Hello"}, "title") == "Hello"

    def test_nested_metadata_mapping(self):
        assert field_value({"metadata": {"title": "Nested"}}, "title") == "Nested"

    def test_listing_object(self):
        listing = ChatListing(
            path="Chat History/1.json",
            metadata=ChatMetadata(
                title="From metadata",
                created_at="2024-01-01T00:00:00Z",
                last_accessed_at="2024-01-01T00:00:00Z",
            ),
        )
        assert field_value(listing, "title") == "From metadata"

    def test_missing_field(self):
        assert field_value({}, "title") == ""
        assert field_value(object(), "title") == ""


class TestBM25Search:
    """Tests for substring BM25 ranking."""

    def test_punctuation_term_matches(self):
        """A single record containing "c++" is returned."""
        records = titled("C++ programming guide")
        assert bm25_search("c++", records) == records

    def test_substring_match(self):
        records = titled("Authentication flow", "Deploy notes")
        assert bm25_search("auth", records) == [records[0]]

    def test_case_insensitive(self):
        records = titled("PYTHON tips")
        assert bm25_search("python", records) == records

    def test_non_matching_records_excluded(self):
        records = titled("Rust ownership", "Python decorators", "Go channels")
        assert bm25_search("python", records) == [records[1]]

    def test_no_match_returns_empty(self):
        assert bm25_search("haskell", titled("Rust", "Python")) == []

    def test_more_matched_terms_rank_higher(self):
        records = titled("Python tips", "Python async tips", "Unrelated")
        result = bm25_search("python async", records)
        assert result[0] == records[1]
        assert result[1] == records[0]
        assert records[2] not in result

    def test_shorter_field_ranks_higher_for_same_term(self):
        records = titled("Docker compose networking and volumes explained", "Docker basics", "Other")
        result = bm25_search("docker", records)
        assert result == [records[1], records[0]]

    def test_ties_keep_input_order(self):
        records = titled("Cats one", "Cats two", "Dogs")
        assert bm25_search("cats", records) == [records[0], records[1]]

    def test_whitespace_query_returns_input(self):
        records = titled("b", "a")
        assert bm25_search("   \t", records) == records

    def test_nested_metadata_titles(self):
        records = [{"metadata": {"title": "Refactor parser"}}, {"metadata": {"title": "Lunch"}}]
        assert bm25_search("parser", records) == [records[0]]

    def test_custom_field(self):
        records = [{"name": "alpha"}, {"name": "beta"}]
        assert bm25_search("bet", records, field="name") == [records[1]]

    @given(st.lists(st.text(max_size=20), max_size=10))
    def test_empty_query_returns_records_unchanged(self, titles):
        """Property: an empty query is the identity."""
        records = titled(*titles)
        assert bm25_search("", records) == records

    @given(st.lists(st.text(max_size=20), max_size=10), st.text(max_size=10))
    def test_results_are_a_subset(self, titles, query):
        """Property: results only contain input records, each at most once."""
        records = titled(*titles)
        result = bm25_search(query, records)
        assert len(result) <= len(records)
        assert all(any(item is record for record in records) for item in result)


class TestRelevanceSearch:
    """Tests for the scoring object."""

    def test_score_reports_every_record(self):
        engine = RelevanceSearch()
        hits = engine.score("tips", titled("Python tips", "Go"))
        assert [hit.matched_terms for hit in hits] == [1, 0]
        assert hits[1].score == 0.0

    def test_idf_zero_when_term_everywhere(self):
        hits = RelevanceSearch().score("tips", titled("Python tips", "Go tips"))
        assert all(hit.score == pytest.approx(0.0) for hit in hits)

    def test_repeated_term_scores_higher(self):
        hits = RelevanceSearch().score("ab", titled("ab ab xx", "ab xx xx", "zz"))
        assert hits[0].score > hits[1].score > 0

    def test_parameters(self):
        params = BM25Parameters()
        assert params.k1 == 1.5
        assert params.b == 0.75
        assert RelevanceSearch(field="name").field == "name"
