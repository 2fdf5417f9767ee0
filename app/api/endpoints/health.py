from fastapi import APIRouter

from app.core.config import settings
from app.services.session_registry import session_registry

router = APIRouter()


@router.get("/health")
async def health():
    return {
        "status": "ok",
        "active_sessions": len(session_registry),
        "auth_configured": bool(settings.SUPABASE_URL and settings.SUPABASE_ANON_KEY),
    }
