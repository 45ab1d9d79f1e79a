import time
import uuid

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from app.core.config import get_settings
from app.core.exceptions import (
    AppError,
    app_exception_handler,
    generic_exception_handler,
    validation_exception_handler,
)
from app.core.logging import bind_request_context, configure_logging, get_logger
from app.db.init import init_db
from app.routers import credits, keywords, payments, projects
from app.services.credits import CreditLedger
from app.services.dataforseo import DataForSEOClient, DataForSEOConfig
from app.storage.base import get_keyword_cache, get_ledger_store

settings = get_settings()
configure_logging(debug=settings.debug)
log = get_logger(__name__)

app = FastAPI(
    title="KeywordPeek API",
    version="1.0.0",
    default_response_class=ORJSONResponse,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    bind_request_context(request_id)
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    log.info(
        "request",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(duration_ms, 2),
    )
    response.headers["X-Request-ID"] = request_id
    return response


app.add_exception_handler(AppError, app_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Routers
app.include_router(credits.router, prefix="/v1/credits", tags=["credits"])
app.include_router(payments.router, prefix="/v1/payments", tags=["payments"])
app.include_router(keywords.router, prefix="/v1/keywords", tags=["keywords"])
app.include_router(projects.router, prefix="/v1/projects", tags=["projects"])


@app.on_event("startup")
async def startup():
    if settings.sentry_dsn:
        import sentry_sdk
        sentry_sdk.init(dsn=settings.sentry_dsn, environment=settings.env, traces_sample_rate=0.1)
        log.info("startup", msg="Sentry enabled")
    app.state.mongo_client = None
    if settings.data_backend == "mongo":
        app.state.mongo_client = await init_db()
        log.info("startup", msg="DB connected")
    app.state.ledger = CreditLedger(get_ledger_store(settings))
    app.state.keyword_cache = get_keyword_cache(settings)

    config = DataForSEOConfig.from_settings(settings)
    app.state.dataforseo = DataForSEOClient(config) if config else None
    if config is None:
        log.warning("startup", msg="DataForSEO credentials missing; keyword endpoints disabled")
    log.info("startup", msg="Ready", data_backend=settings.data_backend)


@app.on_event("shutdown")
async def shutdown():
    client = getattr(app.state, "dataforseo", None)
    if client is not None:
        await client.aclose()
    mongo_client = getattr(app.state, "mongo_client", None)
    if mongo_client is not None:
        mongo_client.close()


@app.get("/health")
async def health():
    """Health check for load balancers and monitoring."""
    return {"status": "ok"}
