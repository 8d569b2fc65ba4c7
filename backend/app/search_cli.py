#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.app.schemas import SearchResult  # noqa: E402
from backend.app.search import InvalidQueryError, build_engine  # noqa: E402
from backend.app.settings import settings  # noqa: E402


def _render(result: SearchResult) -> str:
    lines = [result.answer, ""]
    for title, items in (
        ("Activities", result.activities),
        ("Venues", result.venues),
        ("Destinations", result.destinations),
    ):
        if not items:
            continue
        lines.append(f"{title}:")
        for item in items:
            via = item.matched_via or "-"
            lines.append(f"  {item.relevance_score:7.2f}  [{via}]  {item.name}  ({item.slug})")
        lines.append("")
    if result.suggestions:
        lines.append("Try also: " + "; ".join(result.suggestions))
    lines.append(
        f"confidence={result.confidence} total={result.total_results} "
        f"generated={result.used_generative_answer} elapsed_ms={result.elapsed_ms}"
    )
    return "\n".join(lines)


async def _search(query: str) -> SearchResult:
    engine = build_engine(settings)
    try:
        return await engine.search(query)
    finally:
        await engine.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Search the team building catalog.")
    parser.add_argument("query", help="Free-text search, e.g. 'outdoor adventure team building'")
    parser.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    args = parser.parse_args()

    try:
        result = asyncio.run(_search(args.query))
    except InvalidQueryError as exc:
        parser.error(str(exc))

    if args.json:
        print(json.dumps(result.model_dump(mode="json"), ensure_ascii=False, indent=2))
    else:
        print(_render(result))


if __name__ == "__main__":
    main()
