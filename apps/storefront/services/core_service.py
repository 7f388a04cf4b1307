import logging
from typing import Any, Dict, Optional

from apps.storefront.db import get_supabase

log = logging.getLogger("picklish.core")

CORE_TABLES = ["users", "products", "orders", "vouchers"]


class StoreError(Exception):
    code = "error"

    def __init__(self, message: str, status_code: int = 400, code: Optional[str] = None):
        self.message = message
        self.status_code = status_code
        if code:
            self.code = code
        super().__init__(message)


class NotFoundError(StoreError):
    code = "not_found"

    def __init__(self, message: str):
        super().__init__(message, 404)


class ValidationError(StoreError):
    """Business-rule rejection carrying a machine-readable reason."""

    code = "validation_error"

    def __init__(self, message: str, reason: str, status_code: int = 400):
        self.reason = reason
        super().__init__(message, status_code)


def _require_supabase():
    supabase = get_supabase()
    if not supabase:
        raise StoreError("Supabase client unavailable", 500, code="store_unavailable")
    return supabase


def resolve_user(supabase: Any, token: str) -> Dict[str, Any]:
    try:
        res = supabase.auth.get_user(token)
        user = res.user
    except Exception:
        raise StoreError("Invalid or expired token", 401, code="unauthorized")

    if not user or not user.id:
        raise StoreError("Unable to resolve user identity", 401, code="unauthorized")

    metadata = getattr(user, "user_metadata", None) or {}
    app_metadata = getattr(user, "app_metadata", None) or {}
    return {
        "id": user.id,
        "email": user.email or "",
        "name": metadata.get("full_name") or metadata.get("name") or "",
        "photo_url": metadata.get("avatar_url"),
        "is_admin": app_metadata.get("role") == "admin",
    }


def health_core(supabase: Any) -> Dict[str, Any]:
    checks: Dict[str, Any] = {}
    healthy = True
    for table in CORE_TABLES:
        try:
            supabase.table(table).select("*").limit(1).execute()
            checks[table] = "ok"
        except Exception as e:
            log.warning("health check failed for %s: %s", table, e)
            checks[table] = "error"
            healthy = False
    return {"ok": healthy, "tables": checks}
