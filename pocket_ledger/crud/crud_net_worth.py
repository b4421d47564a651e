from sqlalchemy.orm import Session
from sqlalchemy import desc
from typing import Optional, List, Sequence
from datetime import datetime, date
from decimal import Decimal

from pocket_ledger.db.core import NetWorthSnapshotDB, AccountDB, NotFoundError, LIABILITY_ACCOUNT_TYPES
from pocket_ledger.models.net_worth import (
    NetWorthCalculation, NetWorthSnapshotCreate, NetWorthSnapshotUpdate, NetWorthChange,
)
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)


def calculate_current_net_worth(db: Session, user_id: int) -> NetWorthCalculation:
    """Assets and liabilities from active account balances. Credit balances are liabilities."""

    accounts = db.query(AccountDB).filter(
        AccountDB.user_id == user_id,
        AccountDB.is_active == True
    ).all()

    total_assets = Decimal("0.00")
    total_liabilities = Decimal("0.00")
    for account in accounts:
        if account.account_type in LIABILITY_ACCOUNT_TYPES:
            total_liabilities += abs(account.balance)
        else:
            total_assets += account.balance

    return NetWorthCalculation(
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        net_worth=total_assets - total_liabilities
    )


def create_db_snapshot(db: Session, user_id: int, snapshot_data: NetWorthSnapshotCreate) -> NetWorthSnapshotDB:
    """Store a manually entered snapshot; net worth is derived from the totals"""

    db_snapshot = NetWorthSnapshotDB(
        user_id=user_id,
        snapshot_date=snapshot_data.snapshot_date,
        total_assets=snapshot_data.total_assets,
        total_liabilities=snapshot_data.total_liabilities,
        net_worth=snapshot_data.total_assets - snapshot_data.total_liabilities,
        notes=snapshot_data.notes,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )
    db.add(db_snapshot)
    db.commit()
    db.refresh(db_snapshot)
    return db_snapshot


def take_snapshot(db: Session, user_id: int, snapshot_date: date) -> NetWorthSnapshotDB:
    """Compute current net worth and store it. Several snapshots per day are allowed."""

    calculation = calculate_current_net_worth(db, user_id)
    db_snapshot = NetWorthSnapshotDB(
        user_id=user_id,
        snapshot_date=snapshot_date,
        total_assets=calculation.total_assets,
        total_liabilities=calculation.total_liabilities,
        net_worth=calculation.net_worth,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )
    db.add(db_snapshot)
    db.commit()
    db.refresh(db_snapshot)
    logger.info(f"Net worth snapshot for user {user_id} on {snapshot_date}: {calculation.net_worth}")
    return db_snapshot


def read_db_snapshot(db: Session, snapshot_id: int, user_id: int) -> Optional[NetWorthSnapshotDB]:
    return db.query(NetWorthSnapshotDB).filter(
        NetWorthSnapshotDB.id == snapshot_id,
        NetWorthSnapshotDB.user_id == user_id
    ).first()


def read_db_snapshots(db: Session, user_id: int, date_from: Optional[date] = None,
                      date_to: Optional[date] = None) -> List[NetWorthSnapshotDB]:
    """Snapshots oldest first"""

    query = db.query(NetWorthSnapshotDB).filter(NetWorthSnapshotDB.user_id == user_id)
    if date_from:
        query = query.filter(NetWorthSnapshotDB.snapshot_date >= date_from)
    if date_to:
        query = query.filter(NetWorthSnapshotDB.snapshot_date <= date_to)
    return query.order_by(NetWorthSnapshotDB.snapshot_date, NetWorthSnapshotDB.id).all()


def update_db_snapshot(db: Session, snapshot_id: int, user_id: int,
                       snapshot_updates: NetWorthSnapshotUpdate) -> NetWorthSnapshotDB:
    db_snapshot = read_db_snapshot(db, snapshot_id, user_id)
    if not db_snapshot:
        raise NotFoundError(f"Net worth snapshot with id {snapshot_id} not found")

    update_data = snapshot_updates.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field != 'notes':
            raise ValueError(f"Field '{field}' cannot be null")
        if field in ('total_assets', 'total_liabilities'):
            value = round(value, 2)
        setattr(db_snapshot, field, value)

    db_snapshot.net_worth = db_snapshot.total_assets - db_snapshot.total_liabilities
    db_snapshot.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(db_snapshot)
    return db_snapshot


def delete_db_snapshot(db: Session, snapshot_id: int, user_id: int) -> bool:
    db_snapshot = read_db_snapshot(db, snapshot_id, user_id)
    if not db_snapshot:
        raise NotFoundError(f"Net worth snapshot with id {snapshot_id} not found")

    db.delete(db_snapshot)
    db.commit()
    return True


def get_net_worth_for_date(db: Session, user_id: int, on_date: date) -> Optional[NetWorthSnapshotDB]:
    """The latest snapshot taken on or before a date"""

    return db.query(NetWorthSnapshotDB).filter(
        NetWorthSnapshotDB.user_id == user_id,
        NetWorthSnapshotDB.snapshot_date <= on_date
    ).order_by(desc(NetWorthSnapshotDB.snapshot_date), desc(NetWorthSnapshotDB.id)).first()


def calculate_net_worth_change(snapshots: Sequence[NetWorthSnapshotDB]) -> NetWorthChange:
    """Change from the first to the last of an oldest-first snapshot list"""

    if len(snapshots) < 2:
        return NetWorthChange(amount=Decimal("0.00"), percentage=0.0)

    oldest = Decimal(snapshots[0].net_worth)
    newest = Decimal(snapshots[-1].net_worth)
    amount = newest - oldest
    percentage = float(amount / abs(oldest) * 100) if oldest != 0 else 0.0

    return NetWorthChange(amount=amount, percentage=round(percentage, 2))
