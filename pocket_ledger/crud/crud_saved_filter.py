from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional, List
from datetime import datetime

from pocket_ledger.db.core import SavedFilterDB, TransactionDB, NotFoundError
from pocket_ledger.models.saved_filter import SavedFilterCreate, SavedFilterUpdate, SavedFilterResponse
from pocket_ledger.models.transaction import TransactionFilter
from pocket_ledger.crud.crud_transaction import read_db_transactions
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)


def serialize_filter(filters: TransactionFilter) -> dict:
    """JSON-safe criteria with unset fields left out"""
    return filters.model_dump(mode="json", exclude_none=True)


def read_filter_criteria(db_filter: SavedFilterDB) -> TransactionFilter:
    return TransactionFilter.model_validate(db_filter.filter_criteria or {})


def build_filter_response(db_filter: SavedFilterDB) -> SavedFilterResponse:
    return SavedFilterResponse(
        id=db_filter.id,
        name=db_filter.name,
        filters=read_filter_criteria(db_filter),
        is_favorite=db_filter.is_favorite,
        created_at=db_filter.created_at,
        updated_at=db_filter.updated_at,
    )


# ===== DATABASE OPERATIONS =====

def create_db_saved_filter(db: Session, user_id: int, filter_data: SavedFilterCreate) -> SavedFilterDB:
    db_filter = SavedFilterDB(
        user_id=user_id,
        name=filter_data.name,
        filter_criteria=serialize_filter(filter_data.filters),
        is_favorite=filter_data.is_favorite,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    try:
        db.add(db_filter)
        db.commit()
        db.refresh(db_filter)
        return db_filter
    except IntegrityError:
        db.rollback()
        raise ValueError(f"A saved filter named '{filter_data.name}' already exists")


def read_db_saved_filter(db: Session, filter_id: int, user_id: int) -> Optional[SavedFilterDB]:
    return db.query(SavedFilterDB).filter(SavedFilterDB.id == filter_id, SavedFilterDB.user_id == user_id).first()


def read_db_saved_filters(db: Session, user_id: int, favorites_only: bool = False) -> List[SavedFilterDB]:
    query = db.query(SavedFilterDB).filter(SavedFilterDB.user_id == user_id)
    if favorites_only:
        query = query.filter(SavedFilterDB.is_favorite == True)
    return query.order_by(SavedFilterDB.name).all()


def update_db_saved_filter(db: Session, filter_id: int, user_id: int,
                           filter_updates: SavedFilterUpdate) -> SavedFilterDB:
    """Patch a saved filter. New criteria replace the stored ones wholesale."""

    db_filter = read_db_saved_filter(db, filter_id, user_id)
    if not db_filter:
        raise NotFoundError(f"Saved filter with id {filter_id} not found")

    update_data = filter_updates.model_dump(exclude_unset=True)
    for field in ('name', 'is_favorite'):
        if field in update_data and update_data[field] is None:
            raise ValueError(f"Field '{field}' cannot be null")

    if 'name' in update_data:
        db_filter.name = update_data['name']
    if 'is_favorite' in update_data:
        db_filter.is_favorite = update_data['is_favorite']
    if 'filters' in update_data:
        criteria = filter_updates.filters or TransactionFilter()
        db_filter.filter_criteria = serialize_filter(criteria)
    db_filter.updated_at = datetime.utcnow()
    name = db_filter.name

    try:
        db.commit()
        db.refresh(db_filter)
        return db_filter
    except IntegrityError:
        db.rollback()
        raise ValueError(f"A saved filter named '{name}' already exists")


def delete_db_saved_filter(db: Session, filter_id: int, user_id: int) -> bool:
    db_filter = read_db_saved_filter(db, filter_id, user_id)
    if not db_filter:
        raise NotFoundError(f"Saved filter with id {filter_id} not found")

    db.delete(db_filter)
    db.commit()
    return True


def toggle_filter_favorite(db: Session, filter_id: int, user_id: int) -> SavedFilterDB:
    db_filter = read_db_saved_filter(db, filter_id, user_id)
    if not db_filter:
        raise NotFoundError(f"Saved filter with id {filter_id} not found")

    return update_db_saved_filter(db, filter_id, user_id, SavedFilterUpdate(is_favorite=not db_filter.is_favorite))


def apply_saved_filter(db: Session, filter_id: int, user_id: int,
                       skip: int = 0, limit: Optional[int] = 100) -> List[TransactionDB]:
    """Run a saved filter against the ledger, newest first"""
    db_filter = read_db_saved_filter(db, filter_id, user_id)
    if not db_filter:
        raise NotFoundError(f"Saved filter with id {filter_id} not found")

    logger.debug(f"Applying saved filter {filter_id} ({db_filter.name})")
    return read_db_transactions(db, user_id, filters=read_filter_criteria(db_filter), skip=skip, limit=limit)
