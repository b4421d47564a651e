import sys
import os
import random
from sqlalchemy.orm import Session
from datetime import date, timedelta
from decimal import Decimal
from faker import Faker

# Add the project root to the Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pocket_ledger.db.core import (
    session_local,
    init_db,
    UserDB,
    AccountType,
    BudgetPeriod,
    RecurringFrequency,
    ReminderFrequency,
)
from pocket_ledger.crud import (
    crud_user,
    crud_account,
    crud_transaction,
    crud_transfer,
    crud_category,
    crud_budget,
    crud_recurring,
    crud_goal,
    crud_reminder,
    crud_net_worth,
)
from pocket_ledger.models.user import UserCreate
from pocket_ledger.models.account import AccountCreate
from pocket_ledger.models.transaction import TransactionCreate
from pocket_ledger.models.transfer import TransferCreate
from pocket_ledger.models.budget import BudgetCreate
from pocket_ledger.models.recurring import RecurringTransactionCreate
from pocket_ledger.models.goal import SavingsGoalCreate
from pocket_ledger.models.reminder import ReminderCreate

fake = Faker()

USER_COUNT = 3
SEED_PASSWORD = "password123"

EXPENSE_CATEGORIES = ["Groceries", "Dining", "Transportation", "Utilities", "Entertainment", "Shopping"]


def money(low: float, high: float) -> Decimal:
    return Decimal(str(round(random.uniform(low, high), 2)))


def seed_user(db: Session, index: int, today: date):
    user = crud_user.create_db_user(db, UserCreate(
        email=fake.unique.email(),
        username=f"{fake.user_name()}{index}",
        password=SEED_PASSWORD,
        first_name=fake.first_name(),
        last_name=fake.last_name(),
    ))
    crud_category.ensure_default_categories(db, user.db_id)

    checking = crud_account.create_db_account(db, user.db_id, AccountCreate(
        name="Main Checking", account_type=AccountType.CHECKING,
        opening_balance=money(1500, 4000), institution_name=fake.company(),
    ))
    savings = crud_account.create_db_account(db, user.db_id, AccountCreate(
        name="Emergency Fund", account_type=AccountType.SAVINGS,
        opening_balance=money(5000, 20000), institution_name=fake.company(),
    ))
    card = crud_account.create_db_account(db, user.db_id, AccountCreate(
        name="Rewards Card", account_type=AccountType.CREDIT,
        opening_balance=-money(200, 1500), institution_name=fake.company(),
    ))

    # Roughly six months of card spending and paychecks
    transactions = []
    for _ in range(random.randint(60, 120)):
        transactions.append(TransactionCreate(
            account_id=random.choice([checking.id, card.id]),
            transaction_date=fake.date_between(start_date=today - timedelta(days=180), end_date=today),
            amount=-money(5, 250),
            payee=fake.company(),
            category=random.choice(EXPENSE_CATEGORIES),
            memo=fake.sentence(nb_words=4) if random.random() < 0.3 else None,
        ))
    for months_back in range(6):
        transactions.append(TransactionCreate(
            account_id=checking.id,
            transaction_date=today - timedelta(days=30 * months_back),
            amount=money(3000, 4500),
            payee=fake.company(),
            category="Salary",
        ))
    crud_transaction.bulk_create_transactions(db, user.db_id, transactions)

    crud_transfer.create_transfer(db, user.db_id, TransferCreate(
        from_account_id=checking.id, to_account_id=savings.id,
        amount=Decimal("500.00"), transfer_date=today - timedelta(days=14), memo="Monthly savings",
    ))

    for category in random.sample(EXPENSE_CATEGORIES, 3):
        crud_budget.create_db_budget(db, user.db_id, BudgetCreate(
            category=category, amount=money(200, 600), period=BudgetPeriod.MONTHLY, start_date=today.replace(day=1),
        ))

    crud_recurring.create_db_recurring(db, user.db_id, RecurringTransactionCreate(
        account_id=checking.id, amount=-money(900, 1800), payee=fake.company(), category="Rent/Mortgage",
        frequency=RecurringFrequency.MONTHLY, next_date=today + timedelta(days=random.randint(1, 28)),
    ))

    crud_goal.create_db_goal(db, user.db_id, SavingsGoalCreate(
        name="Vacation", target_amount=Decimal("3000.00"), current_amount=money(0, 1500),
        target_date=today + timedelta(days=365), linked_account_id=savings.id,
    ))

    crud_reminder.create_db_reminder(db, user.db_id, ReminderCreate(
        title="Electric bill", amount=money(60, 180), due_date=today + timedelta(days=random.randint(0, 10)),
        frequency=ReminderFrequency.MONTHLY, category="Utilities",
    ))

    crud_net_worth.take_snapshot(db, user.db_id, today)
    return user


def seed_database():
    """
    Fills the database with demo users, each with accounts, a few months of
    activity, budgets, a recurring bill, a goal and a reminder.
    """
    init_db()
    db: Session = session_local()

    try:
        # Check if data exists to prevent duplicate seeding
        if db.query(UserDB).count() > 0:
            print("Database appears to be already seeded. Exiting.")
            return

        print("Seeding database with sample data...")
        today = date.today()
        for i in range(USER_COUNT):
            user = seed_user(db, i, today)
            print(f"Seeded user {user.username} ({user.email}), id {user.db_id}")

        print(f"Done. Log in with any seeded email and password '{SEED_PASSWORD}'.")
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
