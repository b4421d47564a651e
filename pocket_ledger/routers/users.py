from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from pocket_ledger.crud import crud_user, crud_category
from pocket_ledger.models import user as user_models
from pocket_ledger.db.core import get_db
from pocket_ledger.dependencies import get_current_user_id

router = APIRouter(
    prefix="/users",
    tags=["users"],
)


@router.post("/", response_model=user_models.UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(user: user_models.UserCreate, db: Session = Depends(get_db)):
    """
    Register a user and give them the standard category list.
    """
    try:
        db_user = crud_user.create_db_user(db=db, user_data=user)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    crud_category.ensure_default_categories(db, db_user.db_id)
    return db_user


@router.post("/login")
def login(user_login: user_models.UserLogin, db: Session = Depends(get_db)):
    """
    Check credentials. The returned user_id goes in the X-User-Id header of
    later requests.
    """
    user = crud_user.authenticate_user(db, email=user_login.email, password=user_login.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
        )
    return {"user_id": user.db_id, "username": user.username}


@router.get("/me", response_model=user_models.UserResponse)
def read_current_user(db: Session = Depends(get_db), user_id: int = Depends(get_current_user_id)):
    return crud_user.read_db_user(db, user_id=user_id)
