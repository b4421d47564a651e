import os
from typing import Optional
from sqlalchemy import create_engine, ForeignKey, Index, UniqueConstraint, Boolean, Integer, String, Text, DECIMAL, DateTime, Date, JSON
from sqlalchemy.types import Enum
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Mapped, relationship, mapped_column
from datetime import datetime, date
from uuid import UUID
from decimal import Decimal
import enum


DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///pocket_ledger.db")


# ===== ERRORS =====

class NotFoundError(Exception):
    pass


class AuthenticationError(Exception):
    pass


class ReferentialIntegrityError(ValueError):
    pass


class BalanceMismatchError(ValueError):
    """Raised when a recorded balance disagrees with the balance a caller expects."""

    def __init__(self, calculated: Decimal, expected: Decimal):
        self.calculated = calculated
        self.expected = expected
        self.difference = abs(calculated - expected)
        super().__init__(
            f"Balance mismatch: Expected {expected}, calculated {calculated}. "
            f"Difference: {self.difference:.2f}"
        )


# ===== ENUMS =====

class AccountType(str, enum.Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT = "credit"
    INVESTMENT = "investment"
    RETIREMENT = "retirement"
    CASH = "cash"


# Account types counted as liabilities in net worth aggregates
LIABILITY_ACCOUNT_TYPES = {AccountType.CREDIT}


class TransactionType(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class CategoryType(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


class BudgetPeriod(str, enum.Enum):
    MONTHLY = "monthly"
    ANNUAL = "annual"


class RecurringFrequency(str, enum.Enum):
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class ReminderFrequency(str, enum.Enum):
    ONE_TIME = "one-time"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class AssetType(str, enum.Enum):
    STOCK = "stock"
    ETF = "etf"
    MUTUAL_FUND = "mutual_fund"
    BOND = "bond"
    CRYPTO = "crypto"
    OTHER = "other"


TRANSFER_CATEGORY = "[Transfer]"
UNCATEGORIZED = "Uncategorized"


class Base(DeclarativeBase):
    pass


class UserDB(Base):
    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("email", name="uq_user_email"),
        UniqueConstraint("username", name="uq_user_username"),
        Index("idx_users_email", "email"),
    )

    # Core User Identification
    db_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[UUID] = mapped_column(unique=True, nullable=False)

    # Authentication
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Personal Information
    first_name: Mapped[Optional[str]] = mapped_column(String(100))
    last_name: Mapped[Optional[str]] = mapped_column(String(100))

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    accounts = relationship("AccountDB", back_populates="user")
    transactions = relationship("TransactionDB", back_populates="user")


class AccountDB(Base):
    __tablename__ = "accounts"

    __table_args__ = (
        # Prevent duplicate account names per user
        UniqueConstraint("user_id", "name", name="uq_user_account_name"),
    )

    # Core Account Identification
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"), nullable=False)

    # Account Details
    name: Mapped[str] = mapped_column(String(255), nullable=False)  # "Chase Checking", "Amex Gold Card"
    account_type: Mapped[AccountType] = mapped_column(Enum(AccountType), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    institution_name: Mapped[Optional[str]] = mapped_column(String(255))
    account_number_last4: Mapped[Optional[str]] = mapped_column(String(4))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Balance Tracking
    opening_balance: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), default=Decimal("0.00"))
    balance: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), default=Decimal("0.00"))  # opening_balance + sum of transactions
    balance_last_updated: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("UserDB", back_populates="accounts")
    transactions = relationship("TransactionDB", back_populates="account")
    investment_holdings = relationship("InvestmentHoldingDB", back_populates="account")
    reconciliations = relationship("ReconciliationHistoryDB", back_populates="account")


class TransactionDB(Base):
    __tablename__ = "transactions"

    __table_args__ = (
        # Performance indexes for common queries
        Index("idx_transactions_user_date", "user_id", "transaction_date"),
        Index("idx_transactions_user_account", "user_id", "account_id"),
        Index("idx_transactions_account_reconciled", "account_id", "reconciled"),
        Index("idx_transactions_import_id", "user_id", "import_id"),
    )

    # Core Transaction Identification
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"), nullable=False)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)

    # Basic Transaction Data
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)  # positive = inflow, negative = outflow
    payee: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), default="")  # matched by name, not a foreign key
    subcategory: Mapped[Optional[str]] = mapped_column(String(100))
    memo: Mapped[Optional[str]] = mapped_column(Text)
    transaction_type: Mapped[Optional[TransactionType]] = mapped_column(Enum(TransactionType))

    # Processing
    reconciled: Mapped[bool] = mapped_column(Boolean, default=False)

    # Provenance
    linked_transaction_id: Mapped[Optional[int]] = mapped_column(ForeignKey("transactions.id", ondelete="SET NULL"))
    recurring_transaction_id: Mapped[Optional[int]] = mapped_column(ForeignKey("recurring_transactions.id", ondelete="SET NULL"))
    import_id: Mapped[Optional[str]] = mapped_column(String(64))

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("UserDB", back_populates="transactions")
    account = relationship("AccountDB", back_populates="transactions")


class CategoryDB(Base):
    __tablename__ = "categories"

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_user_category_name"),
        Index("idx_category_user_order", "user_id", "sort_order"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    category_type: Mapped[CategoryType] = mapped_column(Enum(CategoryType), nullable=False)
    color: Mapped[str] = mapped_column(String(7), default="#64748b")  # Hex color code
    icon: Mapped[Optional[str]] = mapped_column(String(50))
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class BudgetDB(Base):
    __tablename__ = "budgets"

    __table_args__ = (
        Index("idx_budgets_user", "user_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"), nullable=False)

    # Budget Data
    category: Mapped[str] = mapped_column(String(100), nullable=False)  # category name
    amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    period: Mapped[BudgetPeriod] = mapped_column(Enum(BudgetPeriod), default=BudgetPeriod.MONTHLY)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    rollover: Mapped[bool] = mapped_column(Boolean, default=False)  # stored only, not applied to spending

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class RecurringTransactionDB(Base):
    __tablename__ = "recurring_transactions"

    __table_args__ = (
        Index("idx_recurring_user_next_date", "user_id", "next_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"), nullable=False)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)

    # Template fields
    amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    payee: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), default="")
    subcategory: Mapped[Optional[str]] = mapped_column(String(100))
    memo: Mapped[Optional[str]] = mapped_column(Text)

    # Schedule
    frequency: Mapped[RecurringFrequency] = mapped_column(Enum(RecurringFrequency), nullable=False)
    next_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_created_date: Mapped[Optional[date]] = mapped_column(Date)  # at most one materialization per day

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    account = relationship("AccountDB")


class ReminderDB(Base):
    __tablename__ = "reminders"

    __table_args__ = (
        Index("idx_reminders_user_due", "user_id", "due_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(15, 2))
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    frequency: Mapped[ReminderFrequency] = mapped_column(Enum(ReminderFrequency), default=ReminderFrequency.ONE_TIME)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False)
    linked_transaction_id: Mapped[Optional[int]] = mapped_column(ForeignKey("transactions.id", ondelete="SET NULL"))
    category: Mapped[Optional[str]] = mapped_column(String(100))
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SavingsGoalDB(Base):
    __tablename__ = "savings_goals"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    target_amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    current_amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), default=Decimal("0.00"))
    target_date: Mapped[Optional[date]] = mapped_column(Date)
    linked_account_id: Mapped[Optional[int]] = mapped_column(ForeignKey("accounts.id", ondelete="SET NULL"))
    color: Mapped[str] = mapped_column(String(7), default="#10b981")
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SavedFilterDB(Base):
    """Named transaction search; filter_criteria holds a serialized TransactionFilter."""
    __tablename__ = "saved_filters"

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_user_filter_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    filter_criteria: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    is_favorite: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class NetWorthSnapshotDB(Base):
    __tablename__ = "net_worth_snapshots"

    __table_args__ = (
        # No uniqueness on date: several snapshots per day are allowed
        Index("idx_net_worth_user_date", "user_id", "snapshot_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"), nullable=False)

    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False)
    total_assets: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    total_liabilities: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    net_worth: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class InvestmentHoldingDB(Base):
    __tablename__ = "investment_holdings"

    __table_args__ = (
        # Prevent duplicate holdings per account/symbol
        UniqueConstraint("account_id", "symbol", name="uq_account_symbol"),
        Index("idx_holdings_account", "account_id"),
        Index("idx_holdings_symbol", "symbol"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"), nullable=False)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)

    # Holding Data
    symbol: Mapped[str] = mapped_column(String(20), nullable=False)  # e.g., "AAPL", "VTSAX"
    name: Mapped[Optional[str]] = mapped_column(String(255))
    shares: Mapped[Decimal] = mapped_column(DECIMAL(15, 6), nullable=False)
    cost_basis: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)  # total paid, not per share
    current_price: Mapped[Optional[Decimal]] = mapped_column(DECIMAL(15, 4))
    asset_type: Mapped[AssetType] = mapped_column(Enum(AssetType), default=AssetType.STOCK)
    last_updated: Mapped[Optional[datetime]] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    account = relationship("AccountDB", back_populates="investment_holdings")


class ReconciliationHistoryDB(Base):
    __tablename__ = "reconciliation_history"

    __table_args__ = (
        Index("idx_reconciliation_account_date", "account_id", "statement_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"), nullable=False)
    account_id: Mapped[int] = mapped_column(ForeignKey("accounts.id"), nullable=False)

    # Statement Data
    statement_date: Mapped[date] = mapped_column(Date, nullable=False)
    statement_beginning_balance: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    statement_ending_balance: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    reconciled_balance: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    difference: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    transaction_count: Mapped[int] = mapped_column(Integer, default=0)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    account = relationship("AccountDB", back_populates="reconciliations")
    reconciled_transactions = relationship(
        "ReconciledTransactionDB", back_populates="reconciliation", cascade="all, delete-orphan"
    )


class ReconciledTransactionDB(Base):
    """Exact transaction set marked reconciled by one reconciliation session."""
    __tablename__ = "reconciled_transactions"

    reconciliation_id: Mapped[int] = mapped_column(ForeignKey("reconciliation_history.id", ondelete="CASCADE"), primary_key=True)
    transaction_id: Mapped[int] = mapped_column(ForeignKey("transactions.id", ondelete="CASCADE"), primary_key=True)

    reconciliation = relationship("ReconciliationHistoryDB", back_populates="reconciled_transactions")


# FastAPI serves sync endpoints from a thread pool
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(
    DATABASE_URL,
    echo=os.getenv("SQL_ECHO", "false").lower() == "true",
    connect_args=connect_args,
)
session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=bind or engine)


# Dependency to get the database session
def get_db():
    database = session_local()
    try:
        yield database
    finally:
        database.close()
