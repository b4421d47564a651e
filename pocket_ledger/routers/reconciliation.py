from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from pocket_ledger.crud import crud_reconciliation
from pocket_ledger.models import reconciliation as reconciliation_models
from pocket_ledger.models.transaction import TransactionResponse
from pocket_ledger.db.core import get_db, NotFoundError, BalanceMismatchError
from pocket_ledger.dependencies import get_current_user_id

router = APIRouter(
    prefix="/reconciliation",
    tags=["reconciliation"],
)


@router.get("/accounts/{account_id}/unreconciled", response_model=List[TransactionResponse])
def read_unreconciled_transactions(
    account_id: int,
    on_or_before: Optional[date] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_reconciliation.get_unreconciled_transactions(
            db=db, user_id=user_id, account_id=account_id, on_or_before=on_or_before
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/", response_model=reconciliation_models.ReconciliationResult, status_code=status.HTTP_201_CREATED)
def reconcile_statement(
    reconciliation: reconciliation_models.ReconciliationCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Reconcile a statement against selected transactions.

    The session is always recorded. `is_balanced` is false when the reconciled
    balance misses the statement's ending balance by a cent or more.
    """
    try:
        return crud_reconciliation.reconcile_transactions(db=db, user_id=user_id, reconciliation_data=reconciliation)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/accounts/{account_id}/history", response_model=List[reconciliation_models.ReconciliationHistoryResponse])
def read_reconciliation_history(
    account_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_reconciliation.read_db_reconciliation_history(db=db, user_id=user_id, account_id=account_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.delete("/{history_id}")
def undo_reconciliation(
    history_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        count = crud_reconciliation.undo_reconciliation(db=db, user_id=user_id, history_id=history_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return {"message": f"Unreconciled {count} transactions.", "unreconciled_count": count}


@router.post("/accounts/{account_id}", response_model=reconciliation_models.AccountReconcileResult)
def reconcile_account(
    account_id: int,
    request: reconciliation_models.AccountReconcileRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Mark everything through `reconcile_date` reconciled, provided the account
    balance matches `expected_balance`. A mismatch returns 409 and changes nothing.
    """
    try:
        return crud_reconciliation.reconcile_account(
            db=db, user_id=user_id, account_id=account_id,
            reconcile_date=request.reconcile_date, expected_balance=request.expected_balance
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except BalanceMismatchError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
