# catalog/reports.py
"""Aggregate reports over the `products` table.

Both reports work on a time window applied to one whitelisted date column
(`date_field`) plus optional case-insensitive equality filters. Soft-deleted
rows are part of the universe; the overview counts them separately by
`deleted_at` within the same window. Nothing is stored.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from .config import REPORT_DEFAULT_WINDOW_DAYS
from .errors import InvalidReportRange
from .models import Product
from .utils import ensure_utc, utc_now

DATE_FIELDS = {
    "created_at": Product.created_at,
    "updated_at": Product.updated_at,
    "deleted_at": Product.deleted_at,
    "source_updated_at": Product.source_updated_at,
}
FILTER_COLUMNS = ("category", "brand", "model", "color", "currency")


def coerce_range(date_from: Optional[datetime], date_to: Optional[datetime]) -> Tuple[datetime, datetime]:
    now = utc_now()
    start = ensure_utc(date_from) or now - timedelta(days=REPORT_DEFAULT_WINDOW_DAYS)
    end = ensure_utc(date_to) or now
    if start > end:
        raise InvalidReportRange('"from" must be <= "to"')
    return start, end


def _filter_clauses(filters: Optional[Dict[str, Any]]) -> List:
    clauses = []
    for col in FILTER_COLUMNS:
        val = (filters or {}).get(col)
        if val:
            clauses.append(func.lower(getattr(Product, col)) == val.lower())
    return clauses


def _pct(num: int, den: int) -> float:
    return round(num * 100 / den, 2) if den > 0 else 0


def _float_or_none(v):
    return None if v is None else float(v)


def overview(
    db: Session,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    date_field: str = "updated_at",
    filters: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    if date_field not in DATE_FIELDS:
        raise InvalidReportRange(f"Invalid date_field: {date_field}")
    start, end = coerce_range(date_from, date_to)
    extra = _filter_clauses(filters)
    in_window = and_(DATE_FIELDS[date_field].between(start, end), *extra)

    row = db.execute(
        select(
            func.count().label("total"),
            func.count(Product.price).label("priced"),
            func.min(Product.price).label("min"),
            func.max(Product.price).label("max"),
            func.avg(Product.price).label("avg"),
        ).select_from(Product).where(in_window)
    ).one()
    deleted = db.execute(
        select(func.count()).select_from(Product).where(
            Product.deleted_at.isnot(None),
            Product.deleted_at.between(start, end),
            *extra,
        )
    ).scalar_one()

    total = row.total or 0
    priced = row.priced or 0
    no_price = total - priced
    return {
        "total": total,
        "deleted_count": deleted,
        "deleted_pct": _pct(deleted, total),
        "priced_count": priced,
        "priced_pct": _pct(priced, total),
        "no_price_count": no_price,
        "no_price_pct": _pct(no_price, total),
        "price_min": _float_or_none(row.min),
        "price_max": _float_or_none(row.max),
        "price_avg": _float_or_none(row.avg),
    }


def by_category(
    db: Session,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    date_field: str = "updated_at",
    filters: Optional[Dict[str, Any]] = None,
) -> List[Dict[str, Any]]:
    if date_field not in DATE_FIELDS:
        raise InvalidReportRange(f"Invalid date_field: {date_field}")
    start, end = coerce_range(date_from, date_to)
    total = func.count().label("total")
    rows = db.execute(
        select(Product.category, total)
        .where(DATE_FIELDS[date_field].between(start, end), *_filter_clauses(filters))
        .group_by(Product.category)
        .order_by(total.desc(), Product.category.asc().nulls_first())
    ).all()
    return [{"category": r.category, "total": int(r.total)} for r in rows]
