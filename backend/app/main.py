import warnings
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, RedirectResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration

from .api.routes import search as search_routes
from .health import health_checker
from .logging_config import SERVICE_VERSION, configure_structlog, get_logger
from .metrics import PrometheusMiddleware, get_metrics
from .schemas import HealthResponse
from .search import build_engine
from .settings import settings
from .utils import add_cors, add_request_id_tracing, add_security_headers

# Suppress noisy multiprocessing semaphore warning on macOS dev runs
warnings.filterwarnings(
    "ignore",
    message=r"resource_tracker: There appear to be .* leaked semaphore objects",
    category=UserWarning,
)

# Configure structured logging (must be done before any logging calls)
configure_structlog(json_logs=not settings.DEBUG)

if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        release=settings.SENTRY_RELEASE or f"teambuilding-search@{SERVICE_VERSION}",
        integrations=[FastApiIntegration()],
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
    )

logger = get_logger(__name__)

API_PREFIX = "/v1"


@asynccontextmanager
async def lifespan(app: FastAPI):
    owned = getattr(app.state, "engine", None) is None
    if owned:
        app.state.engine = build_engine(settings)
        logger.info(
            "search_engine_ready",
            catalog_configured=settings.catalog_configured,
            generation_configured=bool((settings.OPENAI_API_KEY or "").strip()),
        )
    try:
        yield
    finally:
        if owned:
            await app.state.engine.aclose()
            app.state.engine = None


app = FastAPI(
    title="Team Building Search API",
    version=SERVICE_VERSION,
    description="Catalog search and recommendations for team building activities, venues and destinations",
    lifespan=lifespan,
)
add_cors(app)
add_security_headers(app)
add_request_id_tracing(app)
app.add_middleware(PrometheusMiddleware)

app.include_router(search_routes.router, prefix=API_PREFIX)


@app.get("/health", response_model=HealthResponse)
async def health():
    """Return service health with catalog cache and generation status."""
    body = health_checker.check(getattr(app.state, "engine", None))
    status_code = 200 if body["status"] == "ok" else 503
    return JSONResponse(content=HealthResponse(**body).model_dump(), status_code=status_code)


@app.get("/metrics")
def metrics():
    """Expose Prometheus metrics."""
    try:
        return get_metrics()
    except Exception:  # pragma: no cover - defensive path
        logger.exception("Metrics export failed")
        raise HTTPException(status_code=503, detail="metrics unavailable")


@app.get("/", include_in_schema=False)
def root_redirect():
    return RedirectResponse(url="/docs", status_code=307)
