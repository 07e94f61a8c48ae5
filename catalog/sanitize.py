# catalog/sanitize.py
"""Helpers normalising user- and source-provided strings and numbers.

Every helper accepts arbitrary input and returns ``None`` when nothing usable
is left, so callers can store the result straight into nullable columns.
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

NAME_PLACEHOLDER = "(sin nombre)"
SKU_MAX_LENGTH = 64
NAME_MAX_LENGTH = 200

_WS_RE = re.compile(r"\s+")
_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")
_NON_LETTERS_RE = re.compile(r"[^A-Z]")


def collapse_spaces(s: str) -> str:
    return _WS_RE.sub(" ", s).strip()


def clean_string(v: Any) -> Optional[str]:
    """Collapsed, trimmed string or None when empty / not a string."""
    if not isinstance(v, str):
        return None
    out = collapse_spaces(v)
    return out or None


def to_upper(v: Any) -> Optional[str]:
    s = clean_string(v)
    return s.upper() if s else None


def to_decimal(v: Any) -> Optional[Decimal]:
    """Parse a price, accepting a comma as decimal separator ("1299,90")."""
    if v is None or v == "" or isinstance(v, bool):
        return None
    try:
        n = Decimal(str(v).strip().replace(",", ".", 1))
    except InvalidOperation:
        return None
    return n if n.is_finite() else None


def to_int(v: Any) -> Optional[int]:
    """Integer prefix of the value ("12", "12.7" and 12.7 all give 12)."""
    if v is None or v == "" or isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        return int(v) if v == v and v not in (float("inf"), float("-inf")) else None
    m = _INT_PREFIX_RE.match(str(v))
    return int(m.group(1)) if m else None


def normalize_currency(v: Any) -> Optional[str]:
    up = to_upper(v)
    if not up:
        return None
    return _NON_LETTERS_RE.sub("", up) or None


def normalize_sku(v: Any) -> Optional[str]:
    s = clean_string(v)
    if not s:
        return None
    return s.upper()[:SKU_MAX_LENGTH]


def normalize_name(v: Any) -> Optional[str]:
    s = clean_string(v)
    if not s:
        return None
    return s[:NAME_MAX_LENGTH]
