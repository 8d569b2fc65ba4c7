from __future__ import annotations

MIN_KEYWORD_LENGTH = 3


def keywords(query: str) -> list[str]:
    """Lower-cased query words longer than two characters, in order, without repeats."""
    seen: set[str] = set()
    out: list[str] = []
    for word in (query or "").lower().split():
        if len(word) < MIN_KEYWORD_LENGTH or word in seen:
            continue
        seen.add(word)
        out.append(word)
    return out


def decompose(query: str) -> list[str]:
    """Expand a query into match candidates, most specific first.

    Index 0 is the full lower-cased phrase. Contiguous word windows follow,
    longest first and left to right within a length, then single keywords.
    Short words (two characters or fewer) never take part in windows.
    """
    phrase = " ".join((query or "").lower().split())
    if not phrase:
        return []
    words = [word for word in phrase.split(" ") if len(word) >= MIN_KEYWORD_LENGTH]
    candidates: list[str] = [phrase]
    seen = {phrase}

    for length in range(len(words) - 1, 1, -1):
        for start in range(len(words) - length + 1):
            combination = " ".join(words[start : start + length])
            if combination not in seen:
                seen.add(combination)
                candidates.append(combination)

    for word in words:
        if word not in seen:
            seen.add(word)
            candidates.append(word)
    return candidates


def combinations(candidates: list[str]) -> list[str]:
    """Multi-word candidates after the full phrase, in priority order."""
    return [candidate for candidate in candidates[1:] if " " in candidate]


def single_words(candidates: list[str]) -> list[str]:
    return [
        candidate
        for candidate in candidates
        if " " not in candidate and len(candidate) >= MIN_KEYWORD_LENGTH
    ]
