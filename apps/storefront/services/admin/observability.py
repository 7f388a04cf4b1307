import os
import platform
import sys
from typing import Any, Dict

from apps.storefront.config.settings import settings
from apps.storefront.flags import FEATURE_FLAGS, enabled
from apps.storefront.services.admin.overrides import describe_overrides


def system_snapshot() -> Dict[str, Any]:
    return {
        "python_version": sys.version,
        "platform": platform.platform(),
        "pid": os.getpid(),
        "store": settings.STORE_NAME,
        "version": settings.STORE_VERSION,
        "environment": settings.ENVIRONMENT,
        "integrations": {
            "supabase": bool(settings.SUPABASE_URL and settings.SUPABASE_SERVICE_ROLE_KEY),
            "razorpay": settings.razorpay_configured,
            "google_sheets": settings.sheets_configured,
        },
        "flags": {name: enabled(name) for name in FEATURE_FLAGS},
        "overrides": describe_overrides(),
    }
