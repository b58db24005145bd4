import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from .auth import GATES
from .catalog import build_catalog
from .config import configure_logging, get_settings
from .database import Base, engine
from .errors import error_response, register_exception_handlers
from .routes import (
    auth,
    users,
    settings as settings_routes,
    billing,
    conversions,
    files,
    qdata_clean,
    workflows,
    libraries,
    benchmarks,
)

settings = get_settings()
configure_logging(settings)
logger = logging.getLogger(__name__)

if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn, integrations=[FastApiIntegration()])

REQUEST_COUNT = Counter("request_count", "Total requests", ["method", "endpoint"])
REQUEST_LATENCY = Histogram(
    "request_latency_seconds", "Request latency", ["endpoint"]
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("qorscend api ready (%s)", settings.environment)
    yield


app = FastAPI(title="Qorscend API", lifespan=lifespan)
app.state.catalog = build_catalog()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = auth.limiter
app.add_exception_handler(
    RateLimitExceeded, lambda r, e: error_response("Too many requests, please try again later", 429)
)
if not settings.testing:
    app.add_middleware(SlowAPIMiddleware)

register_exception_handlers(app)


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    endpoint = request.url.path
    REQUEST_COUNT.labels(request.method, endpoint).inc()
    REQUEST_LATENCY.labels(endpoint).observe(time.time() - start)
    return response


@app.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/api/health")
def health():
    return {"success": True, "data": {"status": "ok", "environment": settings.environment}}


app.include_router(auth.router)
app.include_router(users.router)
app.include_router(settings_routes.router)
app.include_router(billing.router)
app.include_router(conversions.router)
app.include_router(conversions.qcode_router)
app.include_router(files.router)
app.include_router(qdata_clean.router)
app.include_router(workflows.router)
app.include_router(libraries.router)
app.include_router(benchmarks.router)


def audit_routes():
    public_paths = {
        "/api/auth/login",
        "/api/auth/register",
        "/api/auth/google",
        "/api/auth/github",
        "/api/health",
        "/api/files/upload",
        "/api/billing/plans",
        "/api/workflows/templates",
        "/api/workflows/templates/popular",
        "/api/quantum-libraries",
        "/api/quantum-libraries/seed",
        "/api/qbenchmark-live/providers",
        "/api/qbenchmark-live/status",
    }
    for route in app.routes:
        if isinstance(route, APIRoute) and route.path.startswith("/api") and route.path not in public_paths:
            calls = [dep.call for dep in route.dependant.dependencies]
            if not any(gate in calls for gate in GATES):
                raise RuntimeError(f"Route {route.path} missing authentication")


audit_routes()
