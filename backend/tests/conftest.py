import os
import sys
from pathlib import Path

import pytest
import sentry_sdk
from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Disable outbound Sentry calls during tests
sentry_sdk.init = lambda *args, **kwargs: None  # type: ignore[assignment]
os.environ["SENTRY_DSN"] = ""
os.environ.pop("OPENAI_API_KEY", None)

from backend.app.api.routes.search import get_engine  # noqa: E402
from backend.app.main import app  # noqa: E402
from backend.app.search import CatalogCache, NarrativeResponder, SearchEngine  # noqa: E402
from backend.app.settings import settings  # noqa: E402
from backend.tests.fakes import ManualClock, ScriptedGenerator, StaticCatalogSource  # noqa: E402


@pytest.fixture(autouse=True)
def isolate_settings() -> None:
    settings.OPENAI_API_KEY = None
    settings.SENTRY_DSN = None
    settings.SUPABASE_URL = None
    settings.SUPABASE_ANON_KEY = None
    yield


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def source() -> StaticCatalogSource:
    return StaticCatalogSource()


@pytest.fixture
def make_engine(clock: ManualClock):
    def _make(
        source: StaticCatalogSource | None = None,
        generator: ScriptedGenerator | None = None,
        **responder_kwargs,
    ) -> SearchEngine:
        cache = CatalogCache(source or StaticCatalogSource(), clock=clock, fetch_timeout=1.0)
        responder = NarrativeResponder(generator, **responder_kwargs)
        return SearchEngine(cache, responder)

    return _make


@pytest.fixture
def client(make_engine) -> TestClient:
    engine = make_engine()
    app.state.engine = engine
    app.dependency_overrides[get_engine] = lambda: engine
    try:
        yield TestClient(app, base_url="http://api.testserver")
    finally:
        app.dependency_overrides.clear()
        app.state.engine = None
