from sqlalchemy.orm import Session
from sqlalchemy import desc
from typing import Optional, List, Iterable
from datetime import datetime, date
from decimal import Decimal

from pocket_ledger.db.core import (
    TransactionDB, ReconciliationHistoryDB, ReconciledTransactionDB, NotFoundError, BalanceMismatchError,
)
from pocket_ledger.models.reconciliation import (
    ReconciliationCreate, ReconciliationResult, ReconciliationHistoryResponse, AccountReconcileResult,
)
from pocket_ledger.crud.crud_account import read_db_account
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)

CENT = Decimal("0.01")


def _get_account_or_404(db: Session, user_id: int, account_id: int):
    account = read_db_account(db, account_id, user_id)
    if not account:
        raise NotFoundError(f"Account with id {account_id} not found")
    return account


def get_unreconciled_transactions(db: Session, user_id: int, account_id: int,
                                  on_or_before: Optional[date] = None) -> List[TransactionDB]:
    """Unreconciled transactions on an account, oldest first"""

    _get_account_or_404(db, user_id, account_id)

    query = db.query(TransactionDB).filter(
        TransactionDB.user_id == user_id,
        TransactionDB.account_id == account_id,
        TransactionDB.reconciled == False
    )
    if on_or_before:
        query = query.filter(TransactionDB.transaction_date <= on_or_before)

    return query.order_by(TransactionDB.transaction_date, TransactionDB.id).all()


def calculate_reconciled_balance(transactions: Iterable[TransactionDB], beginning_balance: Decimal) -> Decimal:
    total = Decimal(beginning_balance)
    for transaction in transactions:
        total += Decimal(transaction.amount)
    return round(total, 2)


def reconcile_transactions(db: Session, user_id: int, reconciliation_data: ReconciliationCreate) -> ReconciliationResult:
    """
    Mark a set of statement transactions reconciled and record the session.

    The history row is written whether or not the statement balanced; the
    caller decides what to do with is_balanced. The exact transaction ids are
    kept with the history so an undo touches only this session.
    """
    _get_account_or_404(db, user_id, reconciliation_data.account_id)

    transaction_ids = list(dict.fromkeys(reconciliation_data.transaction_ids))
    transactions = []
    if transaction_ids:
        transactions = db.query(TransactionDB).filter(
            TransactionDB.user_id == user_id,
            TransactionDB.account_id == reconciliation_data.account_id,
            TransactionDB.id.in_(transaction_ids)
        ).all()

    missing = set(transaction_ids) - {t.id for t in transactions}
    if missing:
        raise ValueError(f"Transactions not found on account: {sorted(missing)}")

    already = [t.id for t in transactions if t.reconciled]
    if already:
        raise ValueError(f"Transactions already reconciled: {sorted(already)}")

    late = [t.id for t in transactions if t.transaction_date > reconciliation_data.statement_date]
    if late:
        raise ValueError(f"Transactions dated after the statement date: {sorted(late)}")

    reconciled_balance = calculate_reconciled_balance(transactions, reconciliation_data.statement_beginning_balance)
    difference = round(reconciled_balance - reconciliation_data.statement_ending_balance, 2)
    is_balanced = abs(difference) < CENT

    history = ReconciliationHistoryDB(
        user_id=user_id,
        account_id=reconciliation_data.account_id,
        statement_date=reconciliation_data.statement_date,
        statement_beginning_balance=reconciliation_data.statement_beginning_balance,
        statement_ending_balance=reconciliation_data.statement_ending_balance,
        reconciled_balance=reconciled_balance,
        difference=difference,
        transaction_count=len(transactions),
        notes=reconciliation_data.notes,
        created_at=datetime.utcnow()
    )

    try:
        for transaction in transactions:
            transaction.reconciled = True
            transaction.updated_at = datetime.utcnow()
            history.reconciled_transactions.append(ReconciledTransactionDB(transaction_id=transaction.id))
        db.add(history)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Reconciliation of account {reconciliation_data.account_id} failed", exc_info=True)
        raise

    db.refresh(history)
    if not is_balanced:
        logger.warning(f"Account {history.account_id} reconciled with difference {difference}")
    else:
        logger.info(f"Account {history.account_id} reconciled: {len(transactions)} transactions")

    return ReconciliationResult(
        history=ReconciliationHistoryResponse.model_validate(history),
        reconciled_balance=reconciled_balance,
        difference=difference,
        is_balanced=is_balanced
    )


def read_db_reconciliation(db: Session, history_id: int, user_id: int) -> Optional[ReconciliationHistoryDB]:
    return db.query(ReconciliationHistoryDB).filter(
        ReconciliationHistoryDB.id == history_id,
        ReconciliationHistoryDB.user_id == user_id
    ).first()


def read_db_reconciliation_history(db: Session, user_id: int, account_id: int) -> List[ReconciliationHistoryDB]:
    """Reconciliation sessions for an account, newest statement first"""

    _get_account_or_404(db, user_id, account_id)

    return db.query(ReconciliationHistoryDB).filter(
        ReconciliationHistoryDB.user_id == user_id,
        ReconciliationHistoryDB.account_id == account_id
    ).order_by(desc(ReconciliationHistoryDB.statement_date), desc(ReconciliationHistoryDB.id)).all()


def undo_reconciliation(db: Session, user_id: int, history_id: int) -> int:
    """Unreconcile the transactions of one session and drop its history record.

    Returns the number of transactions flipped back. Sessions recorded
    without a transaction list fall back to every reconciled transaction on
    the account dated on or before the statement date.
    """
    history = read_db_reconciliation(db, history_id, user_id)
    if not history:
        raise NotFoundError(f"Reconciliation with id {history_id} not found")

    query = db.query(TransactionDB).filter(
        TransactionDB.user_id == user_id,
        TransactionDB.account_id == history.account_id,
        TransactionDB.reconciled == True
    )
    linked_ids = [link.transaction_id for link in history.reconciled_transactions]
    if linked_ids:
        query = query.filter(TransactionDB.id.in_(linked_ids))
    else:
        query = query.filter(TransactionDB.transaction_date <= history.statement_date)

    transactions = query.all()

    try:
        for transaction in transactions:
            transaction.reconciled = False
            transaction.updated_at = datetime.utcnow()
        db.delete(history)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Failed to undo reconciliation {history_id}", exc_info=True)
        raise

    logger.info(f"Undid reconciliation {history_id}: {len(transactions)} transactions unreconciled")
    return len(transactions)


def reconcile_account(db: Session, user_id: int, account_id: int, reconcile_date: date,
                      expected_balance: Decimal) -> AccountReconcileResult:
    """
    Check an account against a balance the caller expects, then mark every
    unreconciled transaction through reconcile_date reconciled.

    Raises BalanceMismatchError before touching anything when the implied
    balance (already-reconciled part plus the pending transactions) is off.
    """
    account = _get_account_or_404(db, user_id, account_id)
    pending = get_unreconciled_transactions(db, user_id, account_id, reconcile_date)

    pending_total = sum((Decimal(t.amount) for t in pending), Decimal("0.00"))
    already_reconciled = Decimal(account.balance) - pending_total
    calculated = round(already_reconciled + pending_total, 2)
    expected = round(Decimal(expected_balance), 2)

    if abs(calculated - expected) >= CENT:
        raise BalanceMismatchError(calculated, expected)

    try:
        for transaction in pending:
            transaction.reconciled = True
            transaction.updated_at = datetime.utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Account {account_id} reconciled through {reconcile_date}: {len(pending)} transactions")
    return AccountReconcileResult(reconciled_count=len(pending), balance=calculated)
