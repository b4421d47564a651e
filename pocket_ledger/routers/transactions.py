from fastapi import APIRouter, HTTPException, Query
from fastapi.params import Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from decimal import Decimal

from pocket_ledger.db.core import NotFoundError, get_db
from pocket_ledger.dependencies import get_current_user_id
from pocket_ledger.models.transaction import (
    TransactionCreate,
    TransactionUpdate,
    TransactionResponse,
    TransactionBulkCreate,
    TransactionFilter,
)
from pocket_ledger.crud.crud_transaction import (
    create_db_transaction,
    read_db_transaction,
    read_db_transactions,
    update_db_transaction,
    delete_db_transaction,
    bulk_create_transactions,
    toggle_reconciled,
)
from pocket_ledger.services.csv_import import export_transactions_csv

router = APIRouter(
    prefix="/transactions",
    tags=["transactions"],
)


def get_transaction_filter(
    account_id: Optional[List[int]] = Query(None),
    category: Optional[List[str]] = Query(None),
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    search: Optional[str] = None,
    amount_min: Optional[Decimal] = None,
    amount_max: Optional[Decimal] = None,
    reconciled: Optional[bool] = None,
) -> TransactionFilter:
    return TransactionFilter(
        account_ids=account_id,
        categories=category,
        date_from=date_from,
        date_to=date_to,
        search=search,
        amount_min=amount_min,
        amount_max=amount_max,
        reconciled=reconciled,
    )


@router.post("/", status_code=201)
def create_transaction(transaction: TransactionCreate, db: Session = Depends(get_db),
                       user_id: int = Depends(get_current_user_id)) -> TransactionResponse:
    try:
        db_transaction = create_db_transaction(db, user_id, transaction)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return TransactionResponse.model_validate(db_transaction)


@router.get("/")
def read_transactions(filters: TransactionFilter = Depends(get_transaction_filter), skip: int = 0, limit: int = 100,
                      db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id)) -> List[TransactionResponse]:
    """
    List transactions newest first.

    Repeat `account_id` or `category` to filter on several values. `search`
    matches payee or memo, case-insensitively.
    """
    transactions = read_db_transactions(db, user_id, filters=filters, skip=skip, limit=limit)
    return [TransactionResponse.model_validate(t) for t in transactions]


@router.get("/export")
def export_transactions(filters: TransactionFilter = Depends(get_transaction_filter),
                        db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id)) -> Response:
    """Download every matching transaction as CSV"""
    transactions = read_db_transactions(db, user_id, filters=filters, limit=None)
    return Response(
        content=export_transactions_csv(transactions),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=transactions.csv"},
    )


@router.post("/bulk", status_code=201)
def create_transactions(bulk: TransactionBulkCreate, db: Session = Depends(get_db),
                        user_id: int = Depends(get_current_user_id)) -> List[TransactionResponse]:
    try:
        created_transactions = bulk_create_transactions(db, user_id, bulk.transactions)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return [TransactionResponse.model_validate(t) for t in created_transactions]


@router.get("/{transaction_id}")
def read_transaction(transaction_id: int, db: Session = Depends(get_db),
                     user_id: int = Depends(get_current_user_id)) -> TransactionResponse:
    db_transaction = read_db_transaction(db, transaction_id=transaction_id, user_id=user_id)
    if not db_transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionResponse.model_validate(db_transaction)


@router.put("/{transaction_id}")
def update_transaction(transaction_id: int, transaction: TransactionUpdate, db: Session = Depends(get_db),
                       user_id: int = Depends(get_current_user_id)) -> TransactionResponse:
    try:
        db_transaction = update_db_transaction(db, transaction_id=transaction_id, user_id=user_id, transaction_updates=transaction)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail="Transaction not found") from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return TransactionResponse.model_validate(db_transaction)


@router.delete("/{transaction_id}")
def delete_transaction(transaction_id: int, db: Session = Depends(get_db),
                       user_id: int = Depends(get_current_user_id)) -> TransactionResponse:
    db_transaction = read_db_transaction(db, transaction_id=transaction_id, user_id=user_id)
    if not db_transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    deleted = TransactionResponse.model_validate(db_transaction)
    try:
        delete_db_transaction(db, transaction_id=transaction_id, user_id=user_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return deleted


@router.post("/{transaction_id}/toggle-reconciled")
def toggle_transaction_reconciled(transaction_id: int, db: Session = Depends(get_db),
                                  user_id: int = Depends(get_current_user_id)) -> TransactionResponse:
    try:
        db_transaction = toggle_reconciled(db, transaction_id=transaction_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail="Transaction not found") from e
    return TransactionResponse.model_validate(db_transaction)
