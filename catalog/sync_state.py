# catalog/sync_state.py
"""Per-source sync watermark ("cursor") persistence.

The stored `last_updated_at` only ever moves forward: `bump_if_later`
re-reads it inside the write transaction and the UPDATE carries the same
guard, so out-of-order or concurrent callers cannot regress it.
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import SyncState
from .utils import ensure_utc, logger


def get_or_create(db: Session, source: str) -> SyncState:
    row = db.get(SyncState, source)
    if row is not None:
        return row
    row = SyncState(source=source, last_updated_at=None)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # created by a concurrent caller in the meantime
        db.rollback()
        logger.warning("Sync state for %s created concurrently, re-reading", source)
        return db.query(SyncState).filter(SyncState.source == source).one()
    db.refresh(row)
    return row


def get_cursor(db: Session, source: str) -> Optional[datetime]:
    return ensure_utc(get_or_create(db, source).last_updated_at)


def bump_if_later(db: Session, source: str, candidate: Optional[datetime]) -> bool:
    """Store `candidate` if it is strictly later than the stored watermark.

    Returns True when the watermark was written.
    """
    if candidate is None:
        return False
    candidate = ensure_utc(candidate)
    get_or_create(db, source)
    try:
        row = (
            db.query(SyncState)
            .filter(SyncState.source == source)
            .with_for_update()
            .populate_existing()
            .one()
        )
        current = ensure_utc(row.last_updated_at)
        if current is not None and current >= candidate:
            db.rollback()
            return False
        table = SyncState.__table__
        result = db.execute(
            update(table)
            .where(
                table.c.source == source,
                or_(table.c.last_updated_at.is_(None), table.c.last_updated_at < candidate),
            )
            .values(last_updated_at=candidate)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    return result.rowcount > 0
