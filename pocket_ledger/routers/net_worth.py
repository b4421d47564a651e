from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from pocket_ledger.crud import crud_net_worth
from pocket_ledger.models import net_worth as net_worth_models
from pocket_ledger.db.core import get_db, NotFoundError
from pocket_ledger.dependencies import get_current_user_id, get_today

router = APIRouter(
    prefix="/net-worth",
    tags=["net-worth"],
)


@router.get("/", response_model=net_worth_models.NetWorthCalculation)
def read_current_net_worth(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """Assets minus liabilities across active accounts, computed now"""
    return crud_net_worth.calculate_current_net_worth(db=db, user_id=user_id)


@router.post("/snapshots/take", response_model=net_worth_models.NetWorthSnapshotResponse, status_code=status.HTTP_201_CREATED)
def take_snapshot(
    request: Optional[net_worth_models.TakeSnapshotRequest] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    today: date = Depends(get_today)
):
    snapshot_date = request.snapshot_date if request and request.snapshot_date else today
    return crud_net_worth.take_snapshot(db=db, user_id=user_id, snapshot_date=snapshot_date)


@router.post("/snapshots", response_model=net_worth_models.NetWorthSnapshotResponse, status_code=status.HTTP_201_CREATED)
def create_snapshot(
    snapshot: net_worth_models.NetWorthSnapshotCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """Record a snapshot from figures supplied by the caller"""
    return crud_net_worth.create_db_snapshot(db=db, user_id=user_id, snapshot_data=snapshot)


@router.get("/snapshots", response_model=List[net_worth_models.NetWorthSnapshotResponse])
def read_snapshots(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    return crud_net_worth.read_db_snapshots(db=db, user_id=user_id, date_from=date_from, date_to=date_to)


@router.get("/change", response_model=net_worth_models.NetWorthChange)
def read_net_worth_change(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """Change between the first and last snapshot in the range"""
    snapshots = crud_net_worth.read_db_snapshots(db=db, user_id=user_id, date_from=date_from, date_to=date_to)
    return crud_net_worth.calculate_net_worth_change(snapshots)


@router.get("/on/{on_date}", response_model=net_worth_models.NetWorthSnapshotResponse)
def read_net_worth_for_date(
    on_date: date,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    db_snapshot = crud_net_worth.get_net_worth_for_date(db=db, user_id=user_id, on_date=on_date)
    if db_snapshot is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No snapshot on or before that date")
    return db_snapshot


@router.get("/snapshots/{snapshot_id}", response_model=net_worth_models.NetWorthSnapshotResponse)
def read_snapshot(
    snapshot_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    db_snapshot = crud_net_worth.read_db_snapshot(db=db, snapshot_id=snapshot_id, user_id=user_id)
    if db_snapshot is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Snapshot not found")
    return db_snapshot


@router.put("/snapshots/{snapshot_id}", response_model=net_worth_models.NetWorthSnapshotResponse)
def update_snapshot(
    snapshot_id: int,
    snapshot: net_worth_models.NetWorthSnapshotUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_net_worth.update_db_snapshot(
            db=db, snapshot_id=snapshot_id, user_id=user_id, snapshot_updates=snapshot
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/snapshots/{snapshot_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_snapshot(
    snapshot_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        crud_net_worth.delete_db_snapshot(db=db, snapshot_id=snapshot_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
