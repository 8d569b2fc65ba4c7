from backend.app.search.suggestions import GENERIC_SUGGESTIONS, MAX_SUGGESTIONS, suggest
from backend.app.search.types import EMPTY_SNAPSHOT
from backend.tests.fakes import sample_snapshot


def test_facet_suggestions_come_first():
    assert suggest("team building", sample_snapshot()) == [
        "Virtual team building activities",
        "Outdoor team building activities",
        "Culinary team building activities",
        "Team building in Lonavala",
        "Team building in Bangalore",
        "Team building in South India",
    ]


def test_terms_already_in_query_are_not_suggested():
    suggestions = suggest("virtual team building", sample_snapshot())

    assert len(suggestions) == MAX_SUGGESTIONS
    assert not any("virtual" in suggestion.lower() for suggestion in suggestions)
    assert "Online team activities" in suggestions


def test_location_in_query_is_skipped():
    suggestions = suggest("offsite in bangalore", sample_snapshot())
    assert "Team building in Bangalore" not in suggestions
    assert "Team building in Lonavala" in suggestions


def test_keyword_topics_precede_generic_filler():
    suggestions = suggest("cooking class", EMPTY_SNAPSHOT)
    assert suggestions[:3] == [
        "Culinary workshops",
        "Food-based activities",
        "Chef team challenges",
    ]
    assert len(suggestions) == MAX_SUGGESTIONS


def test_generic_filler_without_catalog_facets():
    assert suggest("team building", EMPTY_SNAPSHOT) == list(GENERIC_SUGGESTIONS)


def test_suggestions_are_unique_case_insensitively():
    suggestions = suggest("remote outdoor", sample_snapshot(), limit=50)
    lowered = [suggestion.lower() for suggestion in suggestions]
    assert len(lowered) == len(set(lowered))
