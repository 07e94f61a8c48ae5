# catalog/models.py
"""SQLAlchemy ORM models for persisted entities.

`Product` holds the normalized catalog rows; `SyncState` holds one watermark
per external source.
"""
import uuid

from sqlalchemy import (
    DDL, Column, Index, Integer, Numeric, String, TIMESTAMP, Uuid, event, func,
)
from .db import Base

class Product(Base):
    __tablename__ = "products"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    contentful_id = Column(String(200), nullable=False, unique=True, index=True)
    sku = Column(String(200))
    name = Column(String(200), nullable=False)
    category = Column(String(200))
    brand = Column(String(200))
    model = Column(String(200))
    color = Column(String(200))
    currency = Column(String(50))
    price = Column(Numeric)
    stock = Column(Integer)
    source_created_at = Column(TIMESTAMP(timezone=True))
    source_updated_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    deleted_at = Column(TIMESTAMP(timezone=True))


class SyncState(Base):
    __tablename__ = "sync_state"
    source = Column(String(100), primary_key=True)
    last_updated_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())


Index(
    "uniq_products_sku_not_null", Product.sku, unique=True,
    postgresql_where=Product.sku.isnot(None),
    sqlite_where=Product.sku.isnot(None),
)
Index("idx_products_category", Product.category)
Index("idx_products_brand", Product.brand)
Index("idx_products_model", Product.model)
Index("idx_products_color", Product.color)
Index("idx_products_currency", Product.currency)
Index("idx_products_price", Product.price)
Index("idx_products_stock", Product.stock)
Index("idx_products_created_at", Product.created_at)
Index("idx_products_updated_at", Product.updated_at)
Index("idx_products_deleted_at", Product.deleted_at)
Index("idx_products_source_updated_at", Product.source_updated_at)
Index(
    "idx_products_name_trgm", Product.name,
    postgresql_using="gin",
    postgresql_ops={"name": "gin_trgm_ops"},
)

# gin_trgm_ops needs the extension before the index is created
event.listen(
    Base.metadata,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS pg_trgm").execute_if(dialect="postgresql"),
)
