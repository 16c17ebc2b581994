"""Shared FastAPI dependencies."""

from fastapi import Request
from pydantic import BaseModel

from app.core.exceptions import UnauthorizedError
from app.core.security import load_session_cookie

SESSION_COOKIE_NAME = "genscout_session"


class SessionUser(BaseModel):
    """Signed-in user as asserted by the session cookie."""
    user_id: str
    email: str | None = None


async def get_current_user(request: Request) -> SessionUser:
    """Dependency: verify the session cookie and return its user."""
    cookie = request.cookies.get(SESSION_COOKIE_NAME)
    if not cookie:
        raise UnauthorizedError("Not authenticated")
    payload = load_session_cookie(cookie)
    if not payload:
        raise UnauthorizedError("Invalid or expired session")
    user_id = payload.get("user_id")
    if not user_id:
        raise UnauthorizedError("Invalid session")
    return SessionUser(user_id=user_id, email=payload.get("email"))
