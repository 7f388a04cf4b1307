import logging
from typing import Optional

from supabase import Client, create_client

from apps.storefront.config.settings import settings

log = logging.getLogger("picklish.db")

_client: Optional[Client] = None


def get_supabase() -> Optional[Client]:
    global _client
    if _client is not None:
        return _client
    if not (settings.SUPABASE_URL and settings.SUPABASE_SERVICE_ROLE_KEY):
        return None
    try:
        _client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    except Exception:
        log.exception("Supabase client creation failed")
        return None
    return _client
