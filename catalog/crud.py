# catalog/crud.py
"""CRUD operations for `Product` entities.

This module provides the reads and writes behind the REST API as well as the
idempotent upsert used by the Contentful sync. Soft-deleted rows
(`deleted_at` set) are invisible to every read here and are never touched by
the upsert.
"""
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import PRODUCTS_MAX_PAGE_SIZE
from .errors import ProductConflict, ProductNotFound
from .models import Product
from .utils import logger

UPSERT_FIELDS = (
    "sku", "name", "category", "brand", "model", "color",
    "currency", "price", "stock", "source_updated_at",
)
EDITABLE_FIELDS = frozenset({
    "name", "category", "brand", "model", "color", "currency", "sku", "price", "stock",
})
EQUALITY_FILTERS = ("category", "brand", "model", "color", "currency", "sku")


def _insert_for(db: Session):
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


def upsert_from_contentful(db: Session, data: Dict[str, Any]) -> None:
    """Update the live row for `contentful_id`, or insert it if there is none.

    The update skips soft-deleted rows; the follow-up insert does nothing on
    any unique conflict (`contentful_id` or `sku`), so a soft-deleted product
    stays deleted and one colliding entry cannot abort the whole sync.
    """
    table = Product.__table__
    values = {k: data.get(k) for k in UPSERT_FIELDS}
    try:
        result = db.execute(
            update(table)
            .where(
                table.c.contentful_id == data["contentful_id"],
                table.c.deleted_at.is_(None),
            )
            .values(**values, updated_at=func.now())
        )
        if result.rowcount == 0:
            stmt = _insert_for(db)(table).values(
                contentful_id=data["contentful_id"],
                source_created_at=data.get("source_created_at"),
                **values,
            )
            inserted = db.execute(stmt.on_conflict_do_nothing())
            if inserted.rowcount == 0:
                logger.warning(
                    "Contentful entry %s skipped: contentful_id or sku %s already taken",
                    data["contentful_id"], values["sku"],
                )
        db.commit()
    except Exception:
        db.rollback()
        raise


def _active(db: Session):
    return db.query(Product).filter(Product.deleted_at.is_(None))


def get_product(db: Session, product_id: UUID) -> Optional[Product]:
    return _active(db).filter(Product.id == product_id).first()


def get_product_or_raise(db: Session, product_id: UUID) -> Product:
    obj = get_product(db, product_id)
    if obj is None:
        raise ProductNotFound(product_id)
    return obj


def selectable_columns(requested: Optional[Iterable[str]]) -> List[str]:
    """Keep the requested names that are real `products` columns, in order."""
    allowed = Product.__table__.columns.keys()
    out = []
    for name in requested or ():
        if name in allowed and name not in out:
            out.append(name)
    return out


def search_products(db: Session, filters: Dict = None, offset: int = 0, limit: int = PRODUCTS_MAX_PAGE_SIZE,
                    select: Optional[Iterable[str]] = None):
    """Filtered, paginated listing of live products.

    With `select`, items are dicts holding only those columns; unknown names
    are dropped, and if none is left the full rows are returned.
    """
    q = _active(db)
    filters = filters or {}
    if filters.get("name"):
        q = q.filter(Product.name.ilike(f"%{filters['name']}%"))
    for col in EQUALITY_FILTERS:
        val = filters.get(col)
        if val:
            q = q.filter(func.lower(getattr(Product, col)) == val.lower())
    if filters.get("price") is not None:
        q = q.filter(Product.price == filters["price"])
    if filters.get("price_min") is not None:
        q = q.filter(Product.price >= filters["price_min"])
    if filters.get("price_max") is not None:
        q = q.filter(Product.price <= filters["price_max"])
    if filters.get("stock") is not None:
        q = q.filter(Product.stock == filters["stock"])
    total = q.count()
    columns = selectable_columns(select)
    if columns:
        q = q.with_entities(*(getattr(Product, c) for c in columns))
    rows = (
        q.order_by(Product.created_at.desc(), Product.id)
        .offset(offset)
        .limit(min(limit, PRODUCTS_MAX_PAGE_SIZE))
        .all()
    )
    items = [dict(r._mapping) for r in rows] if columns else rows
    return {"total": total, "items": items}


def create_product(db: Session, data: Dict[str, Any]) -> Product:
    obj = Product(**data)
    db.add(obj)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ProductConflict("contentful_id or sku already exists") from e
    db.refresh(obj)
    return obj


def update_product(db: Session, product_id: UUID, updates: Dict[str, Any]) -> Product:
    obj = get_product_or_raise(db, product_id)
    data = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS}
    if not data:
        return obj
    for k, v in data.items():
        setattr(obj, k, v)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ProductConflict("sku already exists") from e
    db.refresh(obj)
    return obj


def soft_delete_product(db: Session, product_id: UUID) -> Dict[str, Any]:
    table = Product.__table__
    result = db.execute(
        update(table)
        .where(table.c.id == product_id, table.c.deleted_at.is_(None))
        .values(deleted_at=func.now())
    )
    if result.rowcount == 0:
        db.rollback()
        raise ProductNotFound(product_id)
    db.commit()
    return {"id": product_id, "deleted": True}
