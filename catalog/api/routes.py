# catalog/api/routes.py
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Literal
from uuid import UUID
from .. import crud, reports, schemas
from ..auth import get_current_user, login
from ..config import PRODUCTS_MAX_PAGE_SIZE
from ..db import get_db
from ..errors import InvalidReportRange, ProductConflict, ProductNotFound, SyncAlreadyRunning
from ..models import SyncState
from ..sanitize import clean_string
from ..services import get_sync_service
from ..sync import SyncService
from ..utils import ensure_utc, logger

router = APIRouter()

DateField = Literal["created_at", "updated_at", "deleted_at", "source_updated_at"]

@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/api/auth/login", response_model=schemas.Token)
def auth_login(payload: schemas.LoginRequest | None = None):
    return login(payload.email if payload else None)


def _split_select(select: List[str] | None) -> List[str]:
    # accepts both ?select=a&select=b and ?select=a,b
    return [s for part in (select or []) for s in (clean_string(p) for p in part.split(",")) if s]


@router.get("/api/products", response_model=schemas.ProductPage, response_model_exclude_unset=True)
def list_products(
    offset: int = Query(0, ge=0),
    limit: int = Query(PRODUCTS_MAX_PAGE_SIZE, ge=1),
    name: str | None = Query(None),
    category: str | None = Query(None),
    brand: str | None = Query(None),
    model: str | None = Query(None),
    color: str | None = Query(None),
    currency: str | None = Query(None),
    sku: str | None = Query(None),
    price: Decimal | None = Query(None, ge=0),
    price_min: Decimal | None = Query(None, ge=0),
    price_max: Decimal | None = Query(None, ge=0),
    stock: int | None = Query(None, ge=0),
    select: List[str] | None = Query(None),
    db: Session = Depends(get_db)
):
    filters = {
        "name": clean_string(name),
        "category": clean_string(category),
        "brand": clean_string(brand),
        "model": clean_string(model),
        "color": clean_string(color),
        "currency": clean_string(currency),
        "sku": clean_string(sku),
        "price": price,
        "price_min": price_min,
        "price_max": price_max,
        "stock": stock,
    }
    limit = min(limit, PRODUCTS_MAX_PAGE_SIZE)
    res = crud.search_products(db, filters=filters, offset=offset, limit=limit, select=_split_select(select))
    logger.debug("Found %d products out of %d", len(res["items"]), res["total"])
    return {"offset": offset, "limit": limit, "total": res["total"], "data": res["items"]}


@router.get("/api/products/{product_id}", response_model=schemas.ProductOut)
def get_product(product_id: UUID, db: Session = Depends(get_db)):
    obj = crud.get_product(db, product_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Product not found")
    return obj


@router.post("/api/products", response_model=schemas.ProductOut, status_code=201)
def create_product(
    payload: schemas.ProductCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    try:
        obj = crud.create_product(db, payload.model_dump())
    except ProductConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info("Product %s created by %s", obj.id, user["email"])
    return obj


@router.patch("/api/products/{product_id}", response_model=schemas.ProductOut)
def update_product(
    product_id: UUID,
    payload: schemas.ProductUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    try:
        return crud.update_product(db, product_id, updates=payload.model_dump(exclude_unset=True))
    except ProductNotFound:
        raise HTTPException(status_code=404, detail="Product not found")
    except ProductConflict as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/api/products/{product_id}", response_model=schemas.ProductDeleted)
def delete_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    try:
        return crud.soft_delete_product(db, product_id)
    except ProductNotFound:
        raise HTTPException(status_code=404, detail="Product not found")


def _report_filters(category, brand, model, color, currency):
    return {
        "category": clean_string(category),
        "brand": clean_string(brand),
        "model": clean_string(model),
        "color": clean_string(color),
        "currency": clean_string(currency),
    }


@router.get("/api/reports/overview", response_model=schemas.OverviewReport)
def report_overview(
    date_from: datetime | None = Query(None, alias="from"),
    date_to: datetime | None = Query(None, alias="to"),
    date_field: DateField = Query("updated_at"),
    category: str | None = Query(None),
    brand: str | None = Query(None),
    model: str | None = Query(None),
    color: str | None = Query(None),
    currency: str | None = Query(None),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    try:
        return reports.overview(
            db, date_from, date_to, date_field,
            _report_filters(category, brand, model, color, currency),
        )
    except InvalidReportRange as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/api/reports/by-category", response_model=List[schemas.CategoryCount])
def report_by_category(
    date_from: datetime | None = Query(None, alias="from"),
    date_to: datetime | None = Query(None, alias="to"),
    date_field: DateField = Query("updated_at"),
    category: str | None = Query(None),
    brand: str | None = Query(None),
    model: str | None = Query(None),
    color: str | None = Query(None),
    currency: str | None = Query(None),
    db: Session = Depends(get_db),
    user: dict = Depends(get_current_user),
):
    try:
        return reports.by_category(
            db, date_from, date_to, date_field,
            _report_filters(category, brand, model, color, currency),
        )
    except InvalidReportRange as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/api/sync/run", response_model=schemas.SyncRunOut)
def trigger_sync(
    user: dict = Depends(get_current_user),
    service: SyncService = Depends(get_sync_service),
):
    try:
        result = service.run_once()
    except SyncAlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.exception("Sync failed: %s", e)
        raise HTTPException(status_code=502, detail="Sync failed")
    return asdict(result)


@router.get("/api/sync/status", response_model=schemas.SyncStatusOut)
def sync_status(
    user: dict = Depends(get_current_user),
    service: SyncService = Depends(get_sync_service),
    db: Session = Depends(get_db),
):
    state = db.get(SyncState, service.source_key)
    return {
        "source": service.source_key,
        "phase": service.phase.value,
        "running": service.running,
        "cursor": ensure_utc(state.last_updated_at) if state else None,
        "last_result": asdict(service.last_result) if service.last_result else None,
        "last_error": service.last_error,
    }
