from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from app.core.config import settings
from app.core.rate_limit import consume
from app.services.supabase_auth import get_current_user


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    email: str | None
    is_anonymous: bool
    access_token: str


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def get_bearer_token(request: Request) -> str | None:
    auth = request.headers.get("authorization") or ""
    if not auth.lower().startswith("bearer "):
        return None
    token = auth.split(" ", 1)[1].strip()
    if (not token) or (" " in token) or (len(token) < 20):
        return None
    return token


async def get_auth_context(request: Request) -> AuthContext:
    token = get_bearer_token(request)
    if token is None:
        raise _unauthorized("Missing token")

    # Throttle by IP before hitting Supabase Auth.
    ip = request.client.host if request.client else "unknown"
    await consume(key=f"ip:{ip}", limit=settings.requests_per_minute)

    try:
        user = await get_current_user(access_token=token, use_cache=True)
    except Exception:
        # Invalid, expired and unverifiable tokens all look the same to the caller.
        raise _unauthorized()

    user_id = user.get("id")
    if not isinstance(user_id, str) or not user_id.strip():
        raise _unauthorized()

    await consume(key=f"user:{user_id}", limit=settings.requests_per_minute)

    email = user.get("email")
    return AuthContext(
        user_id=user_id,
        email=email if isinstance(email, str) and email.strip() else None,
        is_anonymous=bool(user.get("is_anonymous") or False),
        access_token=token,
    )


async def verify_token(request: Request) -> AuthContext:
    return await get_auth_context(request)


AuthDep = Annotated[AuthContext, Depends(verify_token)]
