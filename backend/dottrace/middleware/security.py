"""
Dot Trace - Security Middleware

Rate limiting, request size check, security headers.
"""

from fastapi import Request, HTTPException, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from typing import Callable, Optional

from ..config import settings


# ============================================
# RATE LIMITER
# ============================================

def get_rate_limit_key(request: Request) -> str:
    """
    Rate limiting key.
    IP + session id for session endpoints, so one client can run several games.
    """
    ip = get_remote_address(request)
    session_id = session_id_from_path(request.url.path)

    if session_id:
        return f"{ip}:{session_id}"
    return ip


def session_id_from_path(path: str) -> Optional[str]:
    """`/api/v1/game/sessions/<id>/moves` -> `<id>`"""
    parts = [part for part in path.split("/") if part]
    if "sessions" not in parts:
        return None
    index = parts.index("sessions")
    return parts[index + 1] if index + 1 < len(parts) else None


def game_rate_limit() -> str:
    """Read per request, so a settings change applies without a restart."""
    return settings.rate_limit_game


limiter = Limiter(key_func=get_rate_limit_key)


# ============================================
# REQUEST VALIDATORS
# ============================================

async def validate_json_size(request: Request, max_size: int = 1024 * 32):
    """
    Request body size check.
    32KB by default; a full 10x10 path is well under 1KB.
    """
    content_length = request.headers.get("content-length")

    if content_length and int(content_length) > max_size:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Request too large"
        )


# ============================================
# SECURITY HEADERS MIDDLEWARE
# ============================================

async def add_security_headers(request: Request, call_next: Callable):
    """Adds security headers to every response."""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    if not settings.DEBUG:
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; "
            "connect-src 'self'"
        )

    return response
