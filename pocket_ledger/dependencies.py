from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date

from pocket_ledger.db.core import get_db, UserDB, AuthenticationError


def resolve_user_id(db: Session, raw_user_id: Optional[str]) -> int:
    """Map the identity carried by a request onto a stored user, or fail"""
    if not raw_user_id:
        raise AuthenticationError("Not authenticated")
    try:
        user_id = int(raw_user_id)
    except ValueError:
        raise AuthenticationError("Not authenticated")

    if not db.query(UserDB).filter(UserDB.db_id == user_id).first():
        raise AuthenticationError("Not authenticated")
    return user_id


def get_current_user_id(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> int:
    try:
        return resolve_user_id(db, x_user_id)
    except AuthenticationError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))


def get_today() -> date:
    return date.today()
