from backend.app.search.decompose import combinations, decompose, keywords, single_words


def test_decompose_orders_phrase_windows_then_words():
    assert decompose("Outdoor Adventure Team Building") == [
        "outdoor adventure team building",
        "outdoor adventure team",
        "adventure team building",
        "outdoor adventure",
        "adventure team",
        "team building",
        "outdoor",
        "adventure",
        "team",
        "building",
    ]


def test_decompose_skips_short_words_and_duplicates():
    assert decompose("go to the beach") == ["go to the beach", "the", "beach"]
    assert decompose("team team building") == [
        "team team building",
        "team team",
        "team building",
        "team",
        "building",
    ]


def test_decompose_single_word_keeps_phrase_only():
    candidates = decompose("  Bangalore ")
    assert candidates == ["bangalore"]
    assert single_words(candidates) == ["bangalore"]
    assert combinations(candidates) == []


def test_decompose_blank_query_is_empty():
    assert decompose("   ") == []
    assert decompose("") == []


def test_decompose_collapses_inner_whitespace():
    assert decompose("virtual   team\tbuilding")[0] == "virtual team building"


def test_keywords_drop_short_words_and_repeats():
    assert keywords("Team team building at an offsite") == ["team", "building", "offsite"]


def test_combinations_exclude_full_phrase():
    candidates = decompose("virtual team building")
    assert combinations(candidates) == ["virtual team", "team building"]
