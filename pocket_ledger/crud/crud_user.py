from sqlalchemy import or_
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional, List
from uuid import uuid4
from datetime import datetime
import bcrypt

from pocket_ledger.db.core import UserDB
from pocket_ledger.models.user import UserCreate
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)


# ===== PASSWORD HASHING UTILITIES =====

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


# ===== DATABASE OPERATIONS =====

def create_db_user(db: Session, user_data: UserCreate) -> UserDB:
    """Register a login. Emails and usernames arrive lowercased from UserCreate."""

    clash = db.query(UserDB).filter(
        or_(UserDB.email == user_data.email, UserDB.username == user_data.username)
    ).first()
    if clash is not None:
        if clash.email == user_data.email:
            raise ValueError("Email already registered")
        raise ValueError("Username already taken")

    db_user = UserDB(
        id=uuid4(),
        email=user_data.email,
        username=user_data.username,
        password_hash=hash_password(user_data.password),
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    try:
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
        logger.info(f"Created user {db_user.db_id} ({db_user.username})")
        return db_user
    except IntegrityError:
        db.rollback()
        raise ValueError("User creation failed due to database constraint")


def read_db_user(db: Session, user_id: int) -> Optional[UserDB]:
    return db.query(UserDB).filter(UserDB.db_id == user_id).first()


def read_db_users(db: Session) -> List[UserDB]:
    return db.query(UserDB).order_by(UserDB.db_id).all()


def authenticate_user(db: Session, email: str, password: str) -> Optional[UserDB]:
    """Return the user when the email and password match, otherwise None"""
    db_user = db.query(UserDB).filter(UserDB.email == email.strip().lower()).first()
    if not db_user or not verify_password(password, db_user.password_hash):
        return None
    return db_user
