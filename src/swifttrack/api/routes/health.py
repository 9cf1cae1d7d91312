"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...config import settings
from ...data.gazetteer import Gazetteer
from ...db.supabase import get_supabase_client
from ..dependencies import get_gazetteer

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root(gazetteer: Gazetteer = Depends(get_gazetteer)) -> dict:
    """Simple health check reporting the loaded gazetteer size."""
    return {"status": "ok", "districts": len(gazetteer)}


@router.get("/health/identity", status_code=status.HTTP_200_OK)
def health_identity() -> dict:
    """Report whether the identity provider and account store are configured."""
    if get_supabase_client() is None:
        return {
            "configured": False,
            "message": "Supabase not configured. Set SWIFTTRACK_SUPABASE_URL and SWIFTTRACK_SUPABASE_KEY environment variables.",
        }
    return {
        "configured": True,
        "passwordSignIn": bool(settings.supabase_anon_key),
        "message": "Supabase client initialised."
        if settings.supabase_anon_key
        else "Supabase client initialised but SWIFTTRACK_SUPABASE_ANON_KEY is missing; login will fail.",
    }
