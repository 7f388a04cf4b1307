import secrets
import string

from apps.storefront.utils.clock import now_ms

_ALPHABET = string.digits + string.ascii_lowercase


def base36(n: int) -> str:
    if n < 0:
        raise ValueError("base36 expects a non-negative integer")
    if n == 0:
        return "0"
    out = []
    while n:
        n, r = divmod(n, 36)
        out.append(_ALPHABET[r])
    return "".join(reversed(out))


def random_token(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def order_id() -> str:
    return f"ORDER_{now_ms()}_{random_token(9)}"


def subscription_id() -> str:
    return f"SUB_{now_ms()}_{random_token(9)}"


def reward_voucher_code(reward_id: str) -> str:
    return f"{reward_id}_{base36(now_ms())}_{random_token(5)}".upper()


def review_id(product_id: str, user_id: str) -> str:
    return f"{product_id}_{user_id}_{now_ms()}"


def record_id(prefix: str) -> str:
    return f"{prefix}_{now_ms()}_{random_token(6)}"
