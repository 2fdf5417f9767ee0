from fastapi import Depends, HTTPException, Request, Response, status

from app.core.config import settings
from app.services.session_registry import DashboardSession, session_registry


def get_optional_session(request: Request):
    return session_registry.get(request.cookies.get(settings.SESSION_COOKIE_NAME))


def get_dashboard_session(request: Request) -> DashboardSession:
    session = get_optional_session(request)
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return session


def require_user(session: DashboardSession = Depends(get_dashboard_session)) -> DashboardSession:
    """Session whose auth state still has a live user; anonymous means back to login."""
    if session.auth.revalidate().user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return session


def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session_id,
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME)
