import logging
import re
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .api.errors import register_exception_handlers
from .api.router import api_router
from .config import settings
from .db import engine
from .logging_utils import setup_logging
from .oauth import build_providers
from .routers import oauth as oauth_router
from .tokens import TokenService


@asynccontextmanager
async def lifespan(app: FastAPI):
    """App startup/shutdown lifecycle."""
    # Schema is managed by Alembic (alembic upgrade head)
    setup_logging(settings.LOG_LEVEL)
    logging.getLogger("taskboard").info(
        "starting version=%s token_ttl_min=%s", __version__, settings.JWT_EXPIRE_MIN
    )
    yield


tags_metadata = [
    {"name": "auth", "description": "Authentication: register, login, me."},
    {"name": "tasks", "description": "Task management: owner-scoped CRUD."},
]

app = FastAPI(
    title="Task Board API",
    version=__version__,
    description=(
        "JSON API under /api. Register or log in to obtain a Bearer token, "
        "then send it as `Authorization: Bearer <token>` to the task endpoints."
    ),
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Signing secret is read once and injected; handlers get it via get_token_service
app.state.token_service = TokenService.from_settings(settings)
app.state.oauth_providers = build_providers(settings)


@app.get("/health")
def health():
    """Simple healthcheck endpoint."""
    return {"status": "ok"}


app.include_router(api_router)
# Third-party sign-in keeps its historical /auth/... paths
app.include_router(oauth_router.router)

# Unified error handlers
register_exception_handlers(app)


_REQUEST_ID_RE = re.compile(r"[A-Za-z0-9._-]{1,128}")


# Request ID + access log middleware
@app.middleware("http")
async def request_id_and_logging(request: Request, call_next):
    start = time.perf_counter()
    incoming = request.headers.get(settings.REQUEST_ID_HEADER)
    # Untrusted input ends up in logs and headers: reuse only short, plain ids
    req_id = incoming if incoming and _REQUEST_ID_RE.fullmatch(incoming) else uuid.uuid4().hex
    request.state.request_id = req_id
    response = await call_next(request)
    response.headers.setdefault(settings.REQUEST_ID_HEADER, req_id)
    duration_ms = int((time.perf_counter() - start) * 1000)
    logging.getLogger("taskboard.request").info(
        "method=%s path=%s status=%s duration_ms=%s request_id=%s",
        request.method,
        request.url.path,
        getattr(response, "status_code", "-"),
        duration_ms,
        req_id,
    )
    return response


# --- Security: CORS and security headers ---

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# authlib keeps the OAuth state between redirect and callback in a signed cookie
if app.state.oauth_providers:
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SESSION_SECRET,
        session_cookie="taskboard_oauth",
        max_age=10 * 60,
        same_site="lax",
        https_only=settings.SECURITY_ENABLE_HSTS,
    )


@app.middleware("http")
async def security_headers(request, call_next):
    response = await call_next(request)
    # Basic hardening headers
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    if settings.SECURITY_CSP:
        csp = settings.SECURITY_CSP
        path = request.url.path
        if path.startswith("/docs") or path.startswith("/redoc"):
            # Swagger/ReDoc need inline scripts and styles + CDN assets
            csp = (
                "default-src 'self'; "
                "script-src 'self' https://cdn.jsdelivr.net 'unsafe-inline'; "
                "style-src 'self' https://cdn.jsdelivr.net 'unsafe-inline'; "
                "img-src 'self' https: data:; "
                "connect-src 'self'; "
                "frame-ancestors 'none'"
            )
        response.headers["Content-Security-Policy"] = csp
    if settings.SECURITY_ENABLE_HSTS:
        response.headers.setdefault("Strict-Transport-Security", "max-age=15552000; includeSubDomains")
    return response


# --- Observability: liveness, readiness, metrics ---

@app.get("/live")
def live():
    return {"status": "live"}


@app.get("/ready")
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ready"}
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="not ready") from exc


# Expose Prometheus metrics at /metrics
Instrumentator().instrument(app).expose(app, include_in_schema=False)
