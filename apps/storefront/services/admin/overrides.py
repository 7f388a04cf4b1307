from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Process-local feature flag overrides set from the admin console.
# Keys are stored upper-cased so "feature_sheets_sync" and
# "FEATURE_SHEETS_SYNC" address the same flag.
_OVERRIDES: Dict[str, Dict[str, Any]] = {}


def _norm(key: str) -> str:
    return (key or "").strip().upper()


def set_override(key: str, value: bool, set_by: Optional[str] = None) -> str:
    name = _norm(key)
    if not name:
        raise ValueError("override key is required")
    _OVERRIDES[name] = {
        "value": bool(value),
        "set_by": set_by,
        "set_at": datetime.now(timezone.utc).isoformat(),
    }
    return name


def clear_override(key: str) -> bool:
    return _OVERRIDES.pop(_norm(key), None) is not None


def has_override(key: str) -> bool:
    return _norm(key) in _OVERRIDES


def get_override(key: str, default: bool = False) -> bool:
    entry = _OVERRIDES.get(_norm(key))
    return entry["value"] if entry else default


def list_overrides() -> Dict[str, bool]:
    return {k: v["value"] for k, v in _OVERRIDES.items()}


def describe_overrides() -> Dict[str, Dict[str, Any]]:
    return {k: dict(v) for k, v in _OVERRIDES.items()}


def reset_overrides() -> None:
    _OVERRIDES.clear()
