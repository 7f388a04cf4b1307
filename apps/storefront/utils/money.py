from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any


D = Decimal


def _q2(x: Decimal) -> Decimal:
    return x.quantize(D("0.01"), rounding=ROUND_HALF_UP)


def _to_decimal(v: Any, default: Decimal = D("0")) -> Decimal:
    if v is None:
        return default
    if isinstance(v, Decimal):
        return v
    try:
        return D(str(v))
    except Exception:
        return default


def round_rupee(x: Decimal) -> Decimal:
    return x.quantize(D("1"), rounding=ROUND_HALF_UP)


def money_str(x: Any) -> str:
    return str(_q2(_to_decimal(x)))


def to_paise(x: Any) -> int:
    return int(round_rupee(_to_decimal(x) * 100))
