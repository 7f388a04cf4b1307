from fastapi import APIRouter
from fastapi.responses import JSONResponse

from apps.storefront.config.settings import settings
from apps.storefront.db import get_supabase
from apps.storefront.services.core_service import health_core

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
def health_root():
    return {"ok": True, "store": settings.STORE_NAME, "version": settings.STORE_VERSION}


@router.get("/store")
def health_store():
    supabase = get_supabase()
    if supabase is None:
        return JSONResponse(status_code=503, content={"ok": False, "error": "store_unavailable"})
    res = health_core(supabase)
    return JSONResponse(content=res, status_code=200 if res.get("ok") else 503)
