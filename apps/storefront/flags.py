import os
from typing import Optional

from apps.storefront.services.admin.overrides import get_override, has_override

FEATURE_FLAGS = {
    "FEATURE_SHEETS_SYNC": "false",
    "FEATURE_SUBSCRIPTION_SCHEDULER": "false",
    "FEATURE_KEEPALIVE": "false",
    "FEATURE_REQUEST_LOGGING": "true",
}


def enabled(name: str, default: Optional[str] = None) -> bool:
    if has_override(name):
        return get_override(name)
    if default is None:
        default = FEATURE_FLAGS.get(name, "false")
    return (os.getenv(name, default) or "").lower() == "true"
