import re

PHONE_RE = re.compile(r"^[+]?[\d\s\-()]{10,}$")
PINCODE_RE = re.compile(r"^[1-9][0-9]{5}$")


def is_valid_phone(value: str) -> bool:
    return bool(value) and bool(PHONE_RE.match(value))


def is_valid_pincode(value: str) -> bool:
    return bool(value) and bool(PINCODE_RE.match(value))


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()
