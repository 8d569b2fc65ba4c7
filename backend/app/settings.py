from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

REPO_ROOT = Path(__file__).resolve().parents[2]
ENV_FILE = REPO_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE), env_file_encoding="utf-8", extra="ignore"
    )

    # human-readable console logs instead of JSON
    DEBUG: bool = False

    # CORS allow origins (comma-separated). Default empty (no cross-origin).
    CORS_ALLOW_ORIGINS: str = ""

    # Catalog data service (Supabase REST)
    SUPABASE_URL: str | None = None
    SUPABASE_ANON_KEY: str | None = None
    CATALOG_TIMEOUT_SECONDS: float = 10.0

    # Search engine
    SEARCH_CACHE_TTL_SECONDS: float = 300.0
    SEARCH_CATALOG_FETCH_TIMEOUT_SECONDS: float = 8.0
    SEARCH_CATALOG_RETRY_SECONDS: float = 30.0
    SEARCH_ACTIVITY_FETCH_LIMIT: int = 100
    SEARCH_VENUE_FETCH_LIMIT: int = 50
    SEARCH_DESTINATION_FETCH_LIMIT: int = 30
    SEARCH_ACTIVITY_RESULT_LIMIT: int = 10
    SEARCH_VENUE_RESULT_LIMIT: int = 8
    SEARCH_DESTINATION_RESULT_LIMIT: int = 6
    SEARCH_MAX_QUERY_LENGTH: int = 500
    SEARCH_CONTEXT_MAX_CHARS: int = 12000
    SEARCH_WEIGHTS: str = ""

    # Narrative answers (OpenAI)
    OPENAI_API_KEY: str | None = None
    OPENAI_API_BASE: str = "https://api.openai.com/v1"
    OPENAI_TIMEOUT_SECONDS: float = 15.0
    OPENAI_CONNECT_TIMEOUT_SECONDS: float = 5.0
    SEARCH_GPT_MODEL: str = "gpt-4o-mini"
    SEARCH_ANSWER_MAX_TOKENS: int = 200
    SEARCH_ANSWER_TEMPERATURE: float = 0.7
    SEARCH_LLM_MAX_FAILURES: int = 3
    SEARCH_LLM_COOLDOWN_SECONDS: float = 300.0

    # Observability
    SENTRY_DSN: str | None = None
    SENTRY_ENVIRONMENT: str = "development"
    SENTRY_RELEASE: str | None = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.2

    @property
    def allow_origins(self) -> list[str]:
        s = (self.CORS_ALLOW_ORIGINS or "").strip()
        if s == "*":
            return ["*"]
        if s == "":
            return []
        return [part.strip() for part in s.split(",") if part.strip()]

    @property
    def catalog_configured(self) -> bool:
        return bool((self.SUPABASE_URL or "").strip() and (self.SUPABASE_ANON_KEY or "").strip())

    @property
    def fetch_limits(self) -> CollectionLimits:
        return CollectionLimits(
            activities=self.SEARCH_ACTIVITY_FETCH_LIMIT,
            venues=self.SEARCH_VENUE_FETCH_LIMIT,
            destinations=self.SEARCH_DESTINATION_FETCH_LIMIT,
        )

    @property
    def result_limits(self) -> CollectionLimits:
        return CollectionLimits(
            activities=self.SEARCH_ACTIVITY_RESULT_LIMIT,
            venues=self.SEARCH_VENUE_RESULT_LIMIT,
            destinations=self.SEARCH_DESTINATION_RESULT_LIMIT,
        )

    @property
    def parsed_search_weights(self) -> ScoringWeights:
        return ScoringWeights.from_string(self.SEARCH_WEIGHTS)


@dataclass(frozen=True, slots=True)
class CollectionLimits:
    activities: int
    venues: int
    destinations: int


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """Relevance weights per match tier and field.

    Numbers are tunable; the ordering name > description > location > facet
    within every tier is not.
    """

    name_exact: float = 50.0
    description_exact: float = 40.0
    location_exact: float = 35.0
    facet_exact: float = 30.0
    exact_bonus: float = 20.0
    combination_base: float = 25.0
    combination_decay: float = 2.0
    combination_floor: float = 1.0
    name_combination: float = 1.0
    description_combination: float = 0.8
    location_combination: float = 0.7
    facet_combination: float = 0.6
    name_keyword: float = 10.0
    description_keyword: float = 6.0
    location_keyword: float = 5.0
    facet_keyword: float = 3.0

    def __post_init__(self) -> None:
        tiers = {
            "exact": (
                self.name_exact,
                self.description_exact,
                self.location_exact,
                self.facet_exact,
            ),
            "combination": (
                self.name_combination,
                self.description_combination,
                self.location_combination,
                self.facet_combination,
            ),
            "keyword": (
                self.name_keyword,
                self.description_keyword,
                self.location_keyword,
                self.facet_keyword,
            ),
        }
        for tier, values in tiers.items():
            if any(value <= 0 for value in values):
                raise ValueError(f"{tier} weights must be positive")
            if list(values) != sorted(values, reverse=True) or len(set(values)) != len(values):
                raise ValueError(
                    f"{tier} weights must strictly decrease name > description > location > facet"
                )
        if self.exact_bonus < 0:
            raise ValueError("exact_bonus must not be negative")
        if self.combination_floor <= 0 or self.combination_base < self.combination_floor:
            raise ValueError("combination_base must be at least combination_floor (> 0)")

    @property
    def exact_floor(self) -> float:
        """Lowest score any exact-phrase hit can produce."""
        return self.facet_exact + self.exact_bonus

    @classmethod
    def from_string(cls, payload: str | None) -> ScoringWeights:
        base = cls()
        if not payload:
            return base
        known = set(cls.__dataclass_fields__)
        mapping: dict[str, float] = {}
        for part in payload.split(","):
            if "=" not in part:
                continue
            key, value = part.split("=", 1)
            key = key.strip().lower()
            if key not in known:
                continue
            try:
                mapping[key] = float(value.strip())
            except ValueError:
                continue
        values = {name: mapping.get(name, getattr(base, name)) for name in known}
        return cls(**values)


settings = Settings()
