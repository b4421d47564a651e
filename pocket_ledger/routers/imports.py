from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File, Form
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from pocket_ledger.db.core import get_db
from pocket_ledger.dependencies import get_current_user_id, get_today
from pocket_ledger.models.csv_import import CSVColumnMapping, ImportPreview, ImportCommit, ImportResult
from pocket_ledger.services import importer

router = APIRouter(
    prefix="/imports",
    tags=["imports"],
)


@router.post("/csv/preview", response_model=ImportPreview)
async def preview_csv(
    file: UploadFile = File(...),
    date_column: Optional[str] = Form(None),
    amount_column: Optional[str] = Form(None),
    debit_column: Optional[str] = Form(None),
    credit_column: Optional[str] = Form(None),
    payee_column: Optional[str] = Form(None),
    memo_column: Optional[str] = Form(None),
    category_column: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    today: date = Depends(get_today)
):
    """
    Parse a bank CSV and show what would be imported.

    - **file**: the CSV export, first row holding the headers.
    - **\\*_column**: the header to read each field from. Give either
      `amount_column` or a `debit_column`/`credit_column` pair.

    Rows that already exist are flagged as duplicates and rows whose date
    could not be read carry an error. Nothing is saved.
    """
    try:
        mapping = CSVColumnMapping(
            date=date_column,
            amount=amount_column,
            debit=debit_column,
            credit=credit_column,
            payee=payee_column,
            memo=memo_column,
            category=category_column,
        )
        content = await file.read()
        return importer.preview_import(db, user_id, content, mapping, today)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/csv/commit", response_model=ImportResult, status_code=status.HTTP_201_CREATED)
def commit_csv(
    import_data: ImportCommit,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """Save reviewed rows into an account. Error rows are always skipped."""
    try:
        return importer.commit_import(db, user_id, import_data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
