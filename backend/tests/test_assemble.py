import pytest
from backend.app.search.assemble import assemble, confidence_for, rank_collection
from backend.app.search.decompose import decompose
from backend.app.search.types import CatalogItem
from backend.app.settings import CollectionLimits
from backend.tests.fakes import sample_snapshot


def _item(slug, name, **extra):
    return CatalogItem(id=slug or name, name=name, kind="activity", slug=slug, **extra)


def test_rank_collection_drops_unslugged_and_unmatched_items():
    items = [
        _item(None, "Outdoor Draft"),
        _item("  ", "Outdoor Blank"),
        _item("cooking", "Cooking Class"),
        _item("outdoor-day", "Outdoor Day"),
    ]
    ranked = rank_collection(items, decompose("outdoor"), limit=10)
    assert [entry.item.slug for entry in ranked] == ["outdoor-day"]


def test_rank_collection_is_stable_for_equal_scores():
    items = [_item(f"quiz-{n}", "Team Quiz") for n in range(5)]
    ranked = rank_collection(items, decompose("quiz"), limit=10)
    assert [entry.item.slug for entry in ranked] == [f"quiz-{n}" for n in range(5)]


def test_rank_collection_sorts_descending_and_truncates():
    items = [
        _item("weak", "Games", description="outdoor fun"),
        _item("strong", "Outdoor Games", description="outdoor fun"),
        _item("middle", "Outdoor"),
    ]
    ranked = rank_collection(items, decompose("outdoor"), limit=2)
    scores = [entry.relevance_score for entry in ranked]
    assert [entry.item.slug for entry in ranked] == ["strong", "middle"]
    assert scores == sorted(scores, reverse=True)


def test_assemble_applies_per_collection_limits():
    snapshot = sample_snapshot()
    results = assemble(
        "outdoor adventure team building",
        snapshot,
        limits=CollectionLimits(activities=1, venues=1, destinations=1),
    )
    assert [entry.item.slug for entry in results.activities] == [
        "outdoor-adventure-team-building-games"
    ]
    assert len(results.venues) <= 1
    assert len(results.destinations) == 1
    assert results.total == len(results.activities) + len(results.venues) + len(
        results.destinations
    )


def test_assemble_never_returns_unslugged_items():
    results = assemble("outdoor adventure team building", sample_snapshot())
    for collection in (results.activities, results.venues, results.destinations):
        assert all(entry.item.slug for entry in collection)


def test_assemble_blank_query_returns_nothing():
    assert assemble("   ", sample_snapshot()).total == 0


@pytest.mark.parametrize(
    ("total", "expected"),
    [(0, 0.4), (1, 0.65), (2, 0.75), (4, 0.75), (5, 0.85), (9, 0.85), (10, 0.95), (24, 0.95)],
)
def test_confidence_steps(total, expected):
    assert confidence_for(total) == expected
