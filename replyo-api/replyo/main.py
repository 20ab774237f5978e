import time

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from replyo import workers
from replyo.config import missing_required_settings, settings
from replyo.database import get_db
from replyo.logging_config import get_logger, setup_logging
from replyo.models import BusinessProfile, Conversation, ConversationMessage, Subscription
from replyo.routers import (
    admin,
    billing,
    business_profile,
    conversation,
    dashboard,
    health,
    installation,
    instagram,
    license,
    meta,
    onboard,
)
from replyo.services import metrics
from replyo.services.error_tracking import init_sentry
from replyo.services.rate_limiter import RateLimitExceeded, global_rate_limit

setup_logging()
logger = get_logger("main")
init_sentry("api")

app = FastAPI(
    title="Replyo API",
    description="Instagram DM automation for local service businesses",
    version="0.1.0",
)

cors_origins = [origin.strip() for origin in settings.cors_origin.split(",") if origin.strip()] or ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

api_dependencies = [Depends(global_rate_limit)]
for module in (
    billing,
    meta,
    onboard,
    license,
    instagram,
    business_profile,
    conversation,
    dashboard,
    installation,
    admin,
    health,
):
    app.include_router(module.router, prefix=settings.api_base_path, dependencies=api_dependencies)

# Senders only stop retrying on a 200, so these never see a rate limit.
for module in (meta, business_profile):
    app.include_router(module.webhook_router, prefix=settings.api_base_path)

_worker_tasks: list = []


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    if settings.metrics_enabled:
        route = request.scope.get("route")
        path = getattr(route, "path", "unmatched")
        metrics.record_request(request.method, path, response.status_code, time.perf_counter() - started)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"path": ".".join(str(part) for part in error["loc"] if part != "body"), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"success": False, "message": "Validation error", "errors": errors})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content=exc.body(), headers=exc.headers())


@app.on_event("startup")
async def on_startup() -> None:
    global _worker_tasks
    missing = missing_required_settings()
    if missing:
        logger.warning("Missing required settings", extra={"context": {"missing": missing}})
    if workers.workers_enabled() and not _worker_tasks:
        _worker_tasks = workers.start_workers()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    global _worker_tasks
    await workers.stop_workers(_worker_tasks)
    _worker_tasks = []


@app.get("/")
async def root():
    return {
        "success": True,
        "message": "Replyo API",
        "version": app.version,
        "environment": settings.environment,
        "docs": "/docs",
    }


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/db-check")
def db_check(db: Session = Depends(get_db)):
    return {
        "status": "ok",
        "business_profiles": db.query(BusinessProfile).count(),
        "subscriptions": db.query(Subscription).count(),
        "conversations": db.query(Conversation).count(),
        "messages": db.query(ConversationMessage).count(),
    }


@app.get("/metrics")
def prometheus_metrics():
    if not settings.metrics_enabled:
        return JSONResponse(status_code=404, content={"success": False, "message": "Metrics disabled"})
    body, content_type = metrics.render_latest()
    return Response(content=body, media_type=content_type)
