from fastapi import APIRouter, HTTPException, status
from fastapi.params import Depends
from sqlalchemy.orm import Session

from pocket_ledger.db.core import NotFoundError, get_db
from pocket_ledger.dependencies import get_current_user_id
from pocket_ledger.models.transaction import TransactionResponse
from pocket_ledger.models.transfer import TransferCreate, TransferResponse
from pocket_ledger.crud.crud_transfer import create_transfer, delete_transfer

router = APIRouter(
    prefix="/transfers",
    tags=["transfers"],
)


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_account_transfer(transfer: TransferCreate, db: Session = Depends(get_db),
                            user_id: int = Depends(get_current_user_id)) -> TransferResponse:
    """
    Move money between two accounts. Returns both legs; each carries the
    other's id in `linked_transaction_id`.
    """
    try:
        withdrawal, deposit = create_transfer(db, user_id, transfer)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return TransferResponse(
        withdrawal=TransactionResponse.model_validate(withdrawal),
        deposit=TransactionResponse.model_validate(deposit),
    )


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account_transfer(transaction_id: int, db: Session = Depends(get_db),
                            user_id: int = Depends(get_current_user_id)):
    """Delete either leg of a transfer; both legs go"""
    try:
        delete_transfer(db, user_id, transaction_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
