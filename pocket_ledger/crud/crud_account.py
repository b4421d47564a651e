from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from pocket_ledger.db.core import (
    AccountDB, UserDB, TransactionDB, RecurringTransactionDB, InvestmentHoldingDB,
    NotFoundError, AccountType, LIABILITY_ACCOUNT_TYPES,
)
from pocket_ledger.models.account import AccountCreate, AccountUpdate, AccountBalanceSummary
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)


# ===== DATABASE OPERATIONS =====

def create_db_account(db: Session, user_id: int, account_data: AccountCreate) -> AccountDB:
    """Create a new account; the running balance starts at the opening balance"""

    user = db.query(UserDB).filter(UserDB.db_id == user_id).first()
    if not user:
        raise NotFoundError(f"User with id {user_id} not found")

    existing_account = db.query(AccountDB).filter(
        AccountDB.user_id == user_id,
        AccountDB.name == account_data.name
    ).first()
    if existing_account:
        raise ValueError(f"Account name '{account_data.name}' already exists")

    db_account = AccountDB(
        user_id=user_id,
        name=account_data.name,
        account_type=AccountType(account_data.account_type.value),
        currency=account_data.currency,
        institution_name=account_data.institution_name,
        account_number_last4=account_data.account_number_last4,
        is_active=account_data.is_active,
        opening_balance=account_data.opening_balance,
        balance=account_data.opening_balance,
        balance_last_updated=datetime.utcnow(),
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    try:
        db.add(db_account)
        db.commit()
        db.refresh(db_account)
        logger.info(f"Created account {db_account.id} '{db_account.name}' for user {user_id}")
        return db_account
    except IntegrityError:
        db.rollback()
        raise ValueError("Account creation failed due to database constraint")


def read_db_account(db: Session, account_id: int, user_id: Optional[int] = None) -> Optional[AccountDB]:
    """Read an account by ID, optionally filtering by user"""

    query = db.query(AccountDB).filter(AccountDB.id == account_id)

    if user_id:
        query = query.filter(AccountDB.user_id == user_id)

    return query.first()


def read_db_accounts(db: Session, user_id: int, account_type: Optional[AccountType] = None,
                     include_inactive: bool = False, skip: int = 0, limit: int = 100) -> List[AccountDB]:
    """Read accounts for a user, optionally filtered by account type"""

    query = db.query(AccountDB).filter(AccountDB.user_id == user_id)

    if account_type:
        query = query.filter(AccountDB.account_type == AccountType(account_type.value))

    if not include_inactive:
        query = query.filter(AccountDB.is_active == True)

    return query.order_by(AccountDB.name).offset(skip).limit(limit).all()


def update_db_account(db: Session, account_id: int, user_id: int, account_updates: AccountUpdate) -> AccountDB:
    """Update account details. Balances only move through transactions."""

    db_account = read_db_account(db, account_id, user_id)
    if not db_account:
        raise NotFoundError(f"Account with id {account_id} not found")

    if account_updates.name and account_updates.name != db_account.name:
        existing_name = db.query(AccountDB).filter(
            AccountDB.user_id == user_id,
            AccountDB.name == account_updates.name,
            AccountDB.id != account_id
        ).first()
        if existing_name:
            raise ValueError(f"Account name '{account_updates.name}' already exists")

    update_data = account_updates.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field in ('name', 'account_type', 'currency', 'is_active'):
            raise ValueError(f"Field '{field}' cannot be null")
        setattr(db_account, field, value)

    db_account.updated_at = datetime.utcnow()

    try:
        db.commit()
        db.refresh(db_account)
        return db_account
    except IntegrityError:
        db.rollback()
        raise ValueError("Account update failed due to database constraint")


def delete_db_account(db: Session, account_id: int, user_id: int, hard: bool = False) -> bool:
    """Deactivate an account, or remove it entirely when hard=True and nothing references it"""

    db_account = read_db_account(db, account_id, user_id)
    if not db_account:
        raise NotFoundError(f"Account with id {account_id} not found")

    if not hard:
        db_account.is_active = False
        db_account.updated_at = datetime.utcnow()
        db.commit()
        logger.info(f"Deactivated account {account_id}")
        return True

    if db.query(TransactionDB).filter(TransactionDB.account_id == account_id).first():
        raise ValueError("Cannot delete account with existing transactions")

    if db.query(InvestmentHoldingDB).filter(InvestmentHoldingDB.account_id == account_id).first():
        raise ValueError("Cannot delete account with existing investment holdings")

    if db.query(RecurringTransactionDB).filter(RecurringTransactionDB.account_id == account_id).first():
        raise ValueError("Cannot delete account with recurring transactions")

    try:
        db.delete(db_account)
        db.commit()
        logger.info(f"Deleted account {account_id}")
        return True
    except Exception as e:
        db.rollback()
        raise ValueError(f"Failed to delete account: {str(e)}")


# ===== BALANCE LEDGER =====

def apply_balance_delta(db: Session, account_id: int, delta: Decimal) -> AccountDB:
    """Add a signed amount to an account's running balance.

    This is the only place the cached balance is written. It never commits;
    the caller owns the surrounding database transaction.
    """
    db_account = db.query(AccountDB).filter(AccountDB.id == account_id).first()
    if not db_account:
        raise NotFoundError(f"Account with id {account_id} not found")

    db_account.balance = round(Decimal(db_account.balance) + Decimal(delta), 2)
    db_account.balance_last_updated = datetime.utcnow()
    db_account.updated_at = datetime.utcnow()
    logger.debug(f"Account {account_id} balance {delta:+} -> {db_account.balance}")
    return db_account


def calculate_expected_balance(db: Session, account_id: int) -> Decimal:
    """opening_balance plus every transaction amount on the account"""

    db_account = db.query(AccountDB).filter(AccountDB.id == account_id).first()
    if not db_account:
        raise NotFoundError(f"Account with id {account_id} not found")

    amounts = db.query(TransactionDB.amount).filter(TransactionDB.account_id == account_id).all()
    total = sum((Decimal(row.amount) for row in amounts), Decimal("0.00"))
    return round(Decimal(db_account.opening_balance) + total, 2)


def recalculate_account_balance(db: Session, account_id: int, user_id: int) -> AccountDB:
    """Rebuild the cached balance from the transaction history"""

    db_account = read_db_account(db, account_id, user_id)
    if not db_account:
        raise NotFoundError(f"Account with id {account_id} not found")

    db.flush()
    expected = calculate_expected_balance(db, account_id)
    if expected != db_account.balance:
        logger.warning(
            f"Account {account_id} balance drifted: cached {db_account.balance}, recalculated {expected}"
        )

    db_account.balance = expected
    db_account.balance_last_updated = datetime.utcnow()

    try:
        db.commit()
        db.refresh(db_account)
        return db_account
    except Exception:
        db.rollback()
        logger.error(f"Failed to recalculate balance for account {account_id}", exc_info=True)
        raise


def get_account_balance_summary(db: Session, user_id: int) -> AccountBalanceSummary:
    """Totals across active accounts. Credit balances count as liabilities."""

    accounts = read_db_accounts(db, user_id, limit=None)

    accounts_by_type = {}
    total_assets = Decimal('0.00')
    total_liabilities = Decimal('0.00')

    for account in accounts:
        account_type = account.account_type.value
        accounts_by_type[account_type] = accounts_by_type.get(account_type, Decimal('0.00')) + account.balance

        if account.account_type in LIABILITY_ACCOUNT_TYPES:
            total_liabilities += abs(account.balance)
        else:
            total_assets += account.balance

    return AccountBalanceSummary(
        total_assets=total_assets,
        total_liabilities=total_liabilities,
        net_worth=total_assets - total_liabilities,
        accounts_by_type=accounts_by_type
    )
