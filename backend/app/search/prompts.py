from __future__ import annotations

from dataclasses import dataclass
from textwrap import dedent


@dataclass(frozen=True)
class PromptTemplate:
    version: str
    text: str

    def render(self, query: str) -> str:
        return self.text.format(query=query)


SEARCH_ANSWER_PROMPT = PromptTemplate(
    version="search-answer/v1",
    text=dedent(
        """
        Based on the catalog data provided, analyze the search query "{query}" and
        provide a helpful response.

        The user is looking for team building activities, venues, or destinations.
        Provide a conversational response that:
        1. Acknowledges their search query
        2. Highlights relevant options from the catalog data
        3. Suggests specific activities or venues that match their needs
        4. Is helpful and engaging

        Keep the response under 200 words and mention specific items from the data
        by name when relevant. Do not mention items that are not in the data.
        """
    ).strip(),
)
