"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pocket_ledger.db.core import init_db, get_db, AccountType
from pocket_ledger.crud import crud_user, crud_account
from pocket_ledger.dependencies import get_today
from pocket_ledger.main import app
from pocket_ledger.models.user import UserCreate
from pocket_ledger.models.account import AccountCreate

TODAY = date(2024, 6, 15)


@pytest.fixture
def engine():
    """A fresh in-memory database shared by every connection in the test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def user(db):
    return crud_user.create_db_user(db, UserCreate(
        email="alex@example.com",
        username="alex",
        password="correct-horse",
        first_name="Alex",
    ))


@pytest.fixture
def make_account(db, user):
    """Factory for accounts owned by the default user."""
    def _make(name="Checking", account_type=AccountType.CHECKING, opening_balance="0.00", user_id=None):
        return crud_account.create_db_account(db, user_id or user.db_id, AccountCreate(
            name=name,
            account_type=account_type,
            opening_balance=Decimal(opening_balance),
        ))
    return _make


@pytest.fixture
def checking(make_account):
    return make_account("Checking", AccountType.CHECKING, "500.00")


@pytest.fixture
def savings(make_account):
    return make_account("Savings", AccountType.SAVINGS, "1000.00")


@pytest.fixture
def client(db, user):
    """API client authenticated as the default user, pinned to TODAY."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    try:
        yield TestClient(app, headers={"X-User-Id": str(user.db_id)})
    finally:
        app.dependency_overrides.clear()
