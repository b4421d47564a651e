from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from pocket_ledger.crud import crud_account
from pocket_ledger.models import account as account_models
from pocket_ledger.db.core import get_db, NotFoundError, AccountType
from pocket_ledger.dependencies import get_current_user_id

router = APIRouter(
    prefix="/accounts",
    tags=["accounts"],
)


@router.post("/", response_model=account_models.AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    account: account_models.AccountCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Create a new account. Its balance starts at the opening balance.
    """
    try:
        return crud_account.create_db_account(db=db, user_id=user_id, account_data=account)
    except (ValueError, NotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[account_models.AccountResponse])
def read_accounts(
    account_type: Optional[AccountType] = None,
    include_inactive: bool = False,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    return crud_account.read_db_accounts(
        db=db, user_id=user_id, account_type=account_type,
        include_inactive=include_inactive, skip=skip, limit=limit
    )


@router.get("/summary", response_model=account_models.AccountBalanceSummary)
def read_account_summary(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Totals by account type plus assets, liabilities and net worth.
    """
    return crud_account.get_account_balance_summary(db=db, user_id=user_id)


@router.get("/{account_id}", response_model=account_models.AccountResponse)
def read_account(
    account_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    db_account = crud_account.read_db_account(db=db, account_id=account_id, user_id=user_id)
    if db_account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
    return db_account


@router.put("/{account_id}", response_model=account_models.AccountResponse)
def update_account(
    account_id: int,
    account: account_models.AccountUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_account.update_db_account(
            db=db, account_id=account_id, user_id=user_id, account_updates=account
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_id: int,
    hard: bool = False,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Deactivate an account. With hard=true the account is removed, which is
    only allowed while nothing references it.
    """
    try:
        crud_account.delete_db_account(db=db, account_id=account_id, user_id=user_id, hard=hard)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/{account_id}/recalculate", response_model=account_models.AccountResponse)
def recalculate_account(
    account_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Rebuild the running balance from the opening balance and every transaction.
    """
    try:
        return crud_account.recalculate_account_balance(db=db, account_id=account_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
