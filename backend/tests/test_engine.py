import asyncio

import pytest
import sentry_sdk
from backend.app.search import InvalidQueryError
from backend.app.search.engine import UNAVAILABLE_CONFIDENCE, build_engine, query_fingerprint
from backend.app.settings import Settings
from backend.tests.fakes import FailingSource, ScriptedGenerator, StaticCatalogSource


def test_virtual_escape_room_scenario(make_engine):
    engine = make_engine()

    result = asyncio.run(engine.search("virtual team building"))

    top = result.activities[0]
    assert top.name == "Virtual Escape Room Challenge"
    assert top.matched_via in {"exact", "combination"}
    assert not any("virtual" in suggestion.lower() for suggestion in result.suggestions)
    assert result.used_generative_answer is False
    assert result.degraded is False


def test_results_have_slugs_and_descending_scores(make_engine):
    result = asyncio.run(make_engine().search("outdoor adventure team building"))

    assert result.activities[0].slug == "outdoor-adventure-team-building-games"
    for collection in (result.activities, result.venues, result.destinations):
        assert all(item.slug for item in collection)
        scores = [item.relevance_score for item in collection]
        assert scores == sorted(scores, reverse=True)
    assert result.total_results == (
        len(result.activities) + len(result.venues) + len(result.destinations)
    )
    assert result.confidence == 0.85


def test_zero_matches_returns_apology(make_engine):
    result = asyncio.run(make_engine().search("underwater basket weaving"))

    assert result.total_results == 0
    assert result.confidence == 0.4
    assert "couldn't find exact matches" in result.answer
    assert result.degraded is False


def test_catalog_unavailable_is_degraded_without_generation(make_engine):
    generator = ScriptedGenerator(["should not be used"])
    engine = make_engine(source=FailingSource(), generator=generator)

    result = asyncio.run(engine.search("outdoor"))

    assert result.confidence == UNAVAILABLE_CONFIDENCE == 0.3
    assert result.degraded is True
    assert result.used_generative_answer is False
    assert result.total_results == 0
    assert result.activities == result.venues == result.destinations == []
    assert result.answer.startswith("I apologize")
    assert generator.calls == []


def test_generated_answer_flag(make_engine):
    engine = make_engine(generator=ScriptedGenerator(["Try Coorg for your offsite."]))

    result = asyncio.run(engine.search("coorg"))

    assert result.used_generative_answer is True
    assert result.answer == "Try Coorg for your offsite."
    assert result.destinations[0].slug == "coorg"


def test_generation_failure_keeps_results(make_engine):
    engine = make_engine(generator=ScriptedGenerator([RuntimeError("boom")]))

    result = asyncio.run(engine.search("coorg"))

    assert result.used_generative_answer is False
    assert result.answer
    assert result.total_results >= 1


@pytest.mark.parametrize("query", [None, "", "   ", 42, ["outdoor"], "x" * 501])
def test_invalid_queries_are_rejected(make_engine, query):
    engine = make_engine()
    with pytest.raises(InvalidQueryError):
        asyncio.run(engine.search(query))


def test_query_is_trimmed_before_search(make_engine):
    source = StaticCatalogSource()
    engine = make_engine(source=source)

    result = asyncio.run(engine.search("   coorg   "))

    assert result.destinations[0].slug == "coorg"


def test_build_engine_from_settings():
    config = Settings(
        _env_file=None,
        SEARCH_ACTIVITY_RESULT_LIMIT=1,
        SEARCH_MAX_QUERY_LENGTH=20,
        SEARCH_WEIGHTS="name_exact=60",
    )
    engine = build_engine(config, source=StaticCatalogSource())

    assert engine.responder.generator is None
    assert engine.weights.name_exact == 60
    assert engine.limits.activities == 1
    with pytest.raises(InvalidQueryError):
        asyncio.run(engine.search("a query that is far too long"))

    result = asyncio.run(engine.search("outdoor"))
    assert len(result.activities) == 1


def test_empty_catalog_that_loaded_is_a_zero_match_search(make_engine):
    generator = ScriptedGenerator(["Nothing listed yet, but our team can help."])
    engine = make_engine(source=StaticCatalogSource([], [], []), generator=generator)

    result = asyncio.run(engine.search("outdoor"))

    assert result.degraded is False
    assert result.confidence == 0.4
    assert result.total_results == 0
    assert result.used_generative_answer is True
    assert len(generator.calls) == 1
    assert engine.cache.status()["last_error"] is None


def test_search_leaves_sentry_breadcrumbs(make_engine, monkeypatch):
    crumbs = []
    monkeypatch.setattr(sentry_sdk, "add_breadcrumb", lambda **crumb: crumbs.append(crumb))

    asyncio.run(make_engine(source=FailingSource()).search("outdoor"))

    messages = [(crumb["category"], crumb["message"]) for crumb in crumbs]
    assert ("search", "query") in messages
    assert ("catalog", "refresh_failed") in messages
    assert ("search", "catalog_unavailable") in messages
    query_crumb = next(crumb for crumb in crumbs if crumb["message"] == "query")
    assert query_crumb["data"]["query_fp"] == query_fingerprint("outdoor")
