from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration

from app.core.config import settings
from app.core.security import get_bearer_token
from app.routes.goals import router as goals_router
from app.routes.resources import router as resources_router
from app.routes.sessions import router as sessions_router
from app.routes.streaks import router as streaks_router
from app.services.error_log import log_system_error
from app.services.streaks import InvalidSessionError
from app.services.supabase_auth import get_current_user
from app.services.supabase_rest import SupabaseRestError, close_http

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    await close_http()


app = FastAPI(title="LearnLog API", version="0.1.0", lifespan=lifespan)


def _init_sentry() -> None:
    if not settings.sentry_dsn:
        return
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        integrations=[FastApiIntegration()],
        traces_sample_rate=max(0.0, min(settings.sentry_traces_sample_rate, 1.0)),
        send_default_pii=False,
        environment=settings.app_env,
    )


_init_sentry()


def _origin(url: str) -> str:
    # CORS compares scheme+host+port; FRONTEND_URL may carry a path.
    p = urlparse(url)
    if p.scheme and p.netloc:
        return f"{p.scheme}://{p.netloc}"
    return url.rstrip("/")


_ALLOWED_ORIGINS = sorted(
    {
        _origin(str(settings.frontend_url)),
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:8080",
    }
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health() -> dict:
    return {"ok": True}


async def _try_get_user_id_from_request(request: Request) -> str | None:
    token = get_bearer_token(request)
    if token is None:
        return None
    try:
        user = await get_current_user(access_token=token, use_cache=True)
    except Exception:
        return None
    uid = user.get("id")
    return uid if isinstance(uid, str) and uid.strip() else None


@app.exception_handler(SupabaseRestError)
async def supabase_rest_error_handler(request: Request, exc: SupabaseRestError):
    msg = str(exc) or "Supabase request failed"
    if exc.code == "42501" and "row-level security policy" in msg.lower():
        detail: dict[str, str | None] = {
            "message": "Supabase rejected the write (row-level security).",
            "hint": "Check the RLS policies on the learning tables and that SUPABASE_ANON_KEY is current.",
            "code": exc.code,
        }
        status_code = 503
    else:
        detail = {
            "message": "Supabase request failed.",
            "hint": exc.hint,
            "code": exc.code,
        }
        # Propagate 4xx; normalize 5xx to 502.
        status_code = exc.status_code if 400 <= exc.status_code < 500 else 502

    await log_system_error(
        route=str(request.url.path),
        message="Supabase request failed",
        user_id=await _try_get_user_id_from_request(request),
        err=exc,
        meta={
            "status_code": exc.status_code,
            "code": exc.code,
            "path": str(request.url.path),
        },
    )
    return JSONResponse(status_code=status_code, content={"detail": detail})


@app.exception_handler(InvalidSessionError)
async def invalid_session_error_handler(request: Request, exc: InvalidSessionError):
    # Stored rows failed validation: a data defect upstream, not a client error.
    await log_system_error(
        route=str(request.url.path),
        message="Invalid study session data",
        user_id=await _try_get_user_id_from_request(request),
        err=exc,
    )
    return JSONResponse(
        status_code=502,
        content={
            "detail": {
                "message": "Stored study session data is invalid.",
                "hint": str(exc),
                "code": "INVALID_SESSION_DATA",
            }
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    await log_system_error(
        route=str(request.url.path),
        message="Unhandled server error",
        user_id=await _try_get_user_id_from_request(request),
        err=exc,
        meta={"method": request.method},
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(resources_router, prefix="/api")
app.include_router(sessions_router, prefix="/api")
app.include_router(streaks_router, prefix="/api")
app.include_router(goals_router, prefix="/api")
