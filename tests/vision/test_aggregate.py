import pytest

from wishlens.vision.aggregate import aggregate, dedupe, rank
from wishlens.vision.models import CandidateItem
from tests.conftest import error_tile, make_item, ok_tile


class TestIdentityKey:
    def test_host_and_title_are_normalized(self):
        a = make_item("  Nike Air Max ", "https://WWW.Nike.com/t/air-max")
        b = make_item("nike air max", "https://www.nike.com/other-path?x=1")
        assert a.identity_key == b.identity_key == "www.nike.com::nike air max"

    def test_missing_url_uses_unknown_host(self):
        assert make_item("Lamp", None).identity_key == "unknown::lamp"

    def test_unparsable_url_uses_unknown_host(self):
        assert make_item("Lamp", "http://[::1").identity_key == "unknown::lamp"


class TestDedupe:
    def test_same_candidate_from_two_tiles_scores_two(self):
        result = aggregate(
            [
                ok_tile(0, make_item("Desk Lamp", "https://ikea.com/lamp")),
                ok_tile(1, make_item("desk lamp ", "https://ikea.com/lamp-2")),
            ]
        )
        assert len(result.items) == 1
        assert result.items[0].score == 2
        assert result.items[0].reason == "Found in 2 tiles"

    def test_same_title_different_store_stays_separate(self):
        items = dedupe([make_item("Lamp", "https://ikea.com/a"), make_item("Lamp", "https://amazon.com/b")])
        assert len(items) == 2

    def test_first_occurrence_keeps_provider_reason(self):
        item = CandidateItem(title="Mug", reason="Visual match")
        assert dedupe([item])[0].reason == "Visual match"

    def test_first_occurrence_gets_default_reason(self):
        assert dedupe([make_item("Mug")])[0].reason == "Found in 1 tile"

    def test_provider_score_is_reset(self):
        item = CandidateItem(title="Mug", score=7)
        assert dedupe([item])[0].score == 1

    def test_first_occurrence_fields_win(self):
        first = make_item("Mug", price="9.99")
        second = make_item("MUG", price="12.00")
        merged = dedupe([first, second])[0]
        assert merged.title == "Mug"
        assert merged.extras == {"price": "9.99"}

    def test_inputs_are_not_mutated(self):
        item = make_item("Mug")
        tiles = [ok_tile(0, item), ok_tile(1, item)]
        aggregate(tiles)
        assert item.score == 1
        assert item.reason is None


class TestRank:
    def test_sorted_by_score_ties_keep_first_seen_order(self):
        items = [
            CandidateItem(title="a", score=1),
            CandidateItem(title="b", score=3),
            CandidateItem(title="c", score=1),
            CandidateItem(title="d", score=3),
        ]
        assert [i.title for i in rank(items)] == ["b", "d", "a", "c"]

    def test_top_eight_cap(self):
        tiles = [ok_tile(i, make_item(f"Item {i}")) for i in range(20)]
        result = aggregate(tiles)
        assert len(result.items) == 8
        assert [i.title for i in result.items] == [f"Item {i}" for i in range(8)]

    def test_multi_tile_candidates_rank_first(self):
        tiles = [ok_tile(i, make_item(f"Item {i}")) for i in range(10)]
        tiles += [ok_tile(10 + i, make_item("Popular")) for i in range(3)]
        result = aggregate(tiles)
        assert result.items[0].title == "Popular"
        assert result.items[0].score == 3
        assert len(result.items) == 8


class TestQueryAndConfidence:
    def test_confidence_is_mean_of_successful_tiles(self):
        result = aggregate(
            [
                ok_tile(0, make_item("a"), confidence=0.9),
                ok_tile(1, make_item("b"), confidence=0.6),
                ok_tile(2, make_item("c"), confidence=0.3),
                error_tile(3, "Network error. Please check your connection and try again."),
            ]
        )
        assert result.confidence == pytest.approx(0.6)

    def test_confidence_zero_when_not_reported(self):
        assert aggregate([ok_tile(0, make_item("a"))]).confidence == 0.0

    def test_tiles_without_confidence_are_not_counted(self):
        result = aggregate([ok_tile(0, make_item("a"), confidence=0.8), ok_tile(1, make_item("b"))])
        assert result.confidence == pytest.approx(0.8)

    def test_first_non_empty_query_in_tile_order(self):
        result = aggregate(
            [
                ok_tile(0, make_item("a"), query=""),
                ok_tile(1, make_item("b"), query="red sneakers", confidence=0.2),
                ok_tile(2, make_item("c"), query="running shoes", confidence=0.99),
            ]
        )
        assert result.query == "red sneakers"

    def test_ok_tiles_without_items_are_ignored(self):
        result = aggregate([ok_tile(0, query="empty", confidence=0.1), ok_tile(1, make_item("a"), confidence=0.5)])
        assert result.query is None
        assert result.confidence == pytest.approx(0.5)

    def test_no_usable_tiles(self):
        result = aggregate([error_tile(0, "AUTH_REQUIRED")])
        assert result.items == []
        assert result.query is None
        assert result.confidence == 0.0
