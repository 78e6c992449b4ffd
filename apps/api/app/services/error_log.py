from __future__ import annotations

import logging
import traceback
from typing import Any

from app.core.config import settings
from app.services.privacy import redact_text, sanitize_for_log
from app.services.supabase_rest import SupabaseRest

logger = logging.getLogger(__name__)


async def log_system_error(
    *,
    route: str,
    message: str,
    user_id: str | None = None,
    err: BaseException | None = None,
    meta: dict[str, Any] | None = None,
) -> None:
    """Record a server-side failure in `system_errors`. Never raises."""
    logger.error("%s (route=%s)", message, route, exc_info=err)
    try:
        stack = None
        if err is not None:
            raw_stack = "".join(
                traceback.format_exception(type(err), err, err.__traceback__)
            )[:8000]
            stack = redact_text(raw_stack)

        row: dict[str, Any] = {
            "route": sanitize_for_log(route),
            "message": sanitize_for_log(message),
            "stack": stack,
            "user_id": user_id,
            "meta": sanitize_for_log(meta or {}),
        }
        # Audit table is service-role only.
        sb = SupabaseRest(
            str(settings.supabase_url), settings.supabase_service_role_key
        )
        await sb.insert_one(
            "system_errors", bearer_token=settings.supabase_service_role_key, row=row
        )
    except Exception as exc:
        logger.warning("system_errors write failed: %s", exc)
