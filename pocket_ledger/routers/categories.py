from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from pocket_ledger.crud import crud_category
from pocket_ledger.models import category as category_models
from pocket_ledger.db.core import get_db, NotFoundError, ReferentialIntegrityError, CategoryType
from pocket_ledger.dependencies import get_current_user_id

router = APIRouter(
    prefix="/categories",
    tags=["categories"],
)


@router.post("/", response_model=category_models.CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    category: category_models.CategoryCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_category.create_db_category(db=db, user_id=user_id, category_data=category)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/", response_model=List[category_models.CategoryResponse])
def read_categories(
    category_type: Optional[CategoryType] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    return crud_category.read_db_categories(db=db, user_id=user_id, category_type=category_type)


@router.post("/defaults", response_model=List[category_models.CategoryResponse])
def create_default_categories(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """Seed the standard categories. Does nothing if the user already has some."""
    return crud_category.ensure_default_categories(db=db, user_id=user_id)


@router.get("/{category_id}", response_model=category_models.CategoryResponse)
def read_category(
    category_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    db_category = crud_category.read_db_category(db=db, category_id=category_id, user_id=user_id)
    if db_category is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return db_category


@router.put("/{category_id}", response_model=category_models.CategoryResponse)
def update_category(
    category_id: int,
    category: category_models.CategoryUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_category.update_db_category(
            db=db, category_id=category_id, user_id=user_id, category_updates=category
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        crud_category.delete_db_category(db=db, category_id=category_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ReferentialIntegrityError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
