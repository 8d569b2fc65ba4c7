import asyncio

import sentry_sdk

from backend.app.search.narrative import (
    TRUNCATION_MARKER,
    NarrativeResponder,
    build_context,
    fallback_answer,
)
from backend.app.search.prompts import SEARCH_ANSWER_PROMPT
from backend.app.search.types import EMPTY_SNAPSHOT
from backend.tests.fakes import ScriptedGenerator, sample_snapshot


def test_forced_generation_failure_falls_back():
    generator = ScriptedGenerator([RuntimeError("upstream down")])
    responder = NarrativeResponder(generator)

    answer = asyncio.run(responder.respond("outdoor", sample_snapshot()))

    assert answer.generated is False
    assert answer.text.startswith("Great! I found")
    assert len(generator.calls) == 1


def test_generation_timeout_falls_back():
    responder = NarrativeResponder(ScriptedGenerator(["late"], delay=0.5), timeout=0.01)

    answer = asyncio.run(responder.respond("outdoor", sample_snapshot()))

    assert answer.generated is False
    assert answer.text


def test_blank_generation_falls_back():
    responder = NarrativeResponder(ScriptedGenerator(["   \n"]))

    answer = asyncio.run(responder.respond("zzqx", sample_snapshot()))

    assert answer.generated is False
    assert "couldn't find exact matches" in answer.text


def test_generated_answer_is_used_and_prompt_is_well_formed():
    generator = ScriptedGenerator(["  Try the Virtual Escape Room Challenge!  "])
    responder = NarrativeResponder(generator)

    answer = asyncio.run(responder.respond("virtual team building", sample_snapshot()))

    assert answer.generated is True
    assert answer.text == "Try the Virtual Escape Room Challenge!"
    instruction, context = generator.calls[0]
    assert instruction == SEARCH_ANSWER_PROMPT.render("virtual team building")
    assert "under 200 words" in instruction
    assert "ACTIVITIES (5 available)" in context
    assert "Venue: Mountain View Resort" in context
    assert context.endswith('SEARCH QUERY: "virtual team building"')


def test_no_generator_uses_fallback_directly():
    answer = asyncio.run(NarrativeResponder().respond("outdoor", sample_snapshot()))
    assert answer.generated is False


def test_fallback_names_top_match_per_collection():
    text = fallback_answer("outdoor", sample_snapshot())

    assert text.startswith('Great! I found 6 options for "outdoor".')
    assert (
        'We have 3 activities including "Outdoor Adventure Team Building Games" '
        "which is perfect for 20-200 people."
    ) in text
    assert 'Plus 1 venues like "Mountain View Resort" in Lonavala.' in text
    assert "We also cover 2 destinations including Bangalore." in text
    assert text.endswith("contact our team for personalized recommendations!")


def test_fallback_without_matches_apologises():
    text = fallback_answer("underwater basket weaving", EMPTY_SNAPSHOT)
    assert 'I couldn\'t find exact matches for "underwater basket weaving"' in text
    assert "Contact us" in text


def test_build_context_truncates_catalog_but_keeps_query():
    context = build_context(sample_snapshot(), "cooking", max_chars=120)

    assert TRUNCATION_MARKER in context
    assert context.endswith('SEARCH QUERY: "cooking"')
    assert len(context) < 120 + len(TRUNCATION_MARKER) + 40


def test_fallback_after_failure_leaves_breadcrumb(monkeypatch):
    crumbs = []
    monkeypatch.setattr(sentry_sdk, "add_breadcrumb", lambda **crumb: crumbs.append(crumb))
    responder = NarrativeResponder(ScriptedGenerator([RuntimeError("upstream down")]))

    asyncio.run(responder.respond("outdoor", sample_snapshot()))

    assert crumbs == [
        {
            "category": "search",
            "message": "narrative_fallback",
            "level": "warning",
            "data": {"reason": "error", "template": SEARCH_ANSWER_PROMPT.version},
        }
    ]
