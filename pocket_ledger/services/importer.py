from sqlalchemy.orm import Session
from datetime import date

from pocket_ledger.db.core import UNCATEGORIZED
from pocket_ledger.crud import crud_transaction
from pocket_ledger.models.csv_import import CSVColumnMapping, ImportPreview, ImportCommit, ImportResult
from pocket_ledger.models.transaction import TransactionCreate
from pocket_ledger.services.csv_import import (
    parse_csv_file,
    map_csv_rows,
    detect_duplicates,
    auto_assign_categories,
    generate_import_id,
)
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)


def preview_import(db: Session, user_id: int, content: bytes, mapping: CSVColumnMapping, today: date) -> ImportPreview:
    """
    Turn an uploaded CSV into reviewable rows.

    - Parses the file and applies the column mapping.
    - Flags rows matching an existing transaction on date, amount and payee.
    - Fills missing categories from the user's history for the same payee.
    Nothing is written.
    """
    parsed = parse_csv_file(content)
    rows = map_csv_rows(parsed.rows, mapping, today)

    existing = crud_transaction.read_db_transactions(db, user_id, limit=None)
    rows = detect_duplicates(rows, existing)
    rows = auto_assign_categories(rows, existing)

    preview = ImportPreview(
        headers=parsed.headers,
        rows=rows,
        duplicate_count=sum(1 for r in rows if r.is_duplicate),
        error_count=sum(1 for r in rows if r.error),
    )
    logger.info(
        f"Import preview for user {user_id}: {len(rows)} rows, "
        f"{preview.duplicate_count} duplicates, {preview.error_count} errors"
    )
    return preview


def commit_import(db: Session, user_id: int, import_data: ImportCommit) -> ImportResult:
    """Write reviewed rows into one account as a single bulk insert"""

    crud_transaction.get_owned_account(db, user_id, import_data.account_id)

    existing = crud_transaction.read_db_transactions(db, user_id, limit=None)
    rows = detect_duplicates(import_data.rows, existing)

    skipped_errors = sum(1 for r in rows if r.error)
    skipped_duplicates = 0
    to_create = []
    for row in rows:
        if row.error:
            continue
        if row.is_duplicate and import_data.skip_duplicates:
            skipped_duplicates += 1
            continue
        to_create.append(TransactionCreate(
            account_id=import_data.account_id,
            transaction_date=row.transaction_date,
            amount=row.amount,
            payee=row.payee,
            category=row.category or UNCATEGORIZED,
            memo=row.memo,
            import_id=generate_import_id(row.transaction_date, row.amount, row.payee),
        ))

    if to_create:
        crud_transaction.bulk_create_transactions(db, user_id, to_create)

    logger.info(
        f"Imported {len(to_create)} transactions into account {import_data.account_id} "
        f"(skipped {skipped_duplicates} duplicates, {skipped_errors} errors)"
    )
    return ImportResult(
        created=len(to_create),
        skipped_duplicates=skipped_duplicates,
        skipped_errors=skipped_errors,
    )
