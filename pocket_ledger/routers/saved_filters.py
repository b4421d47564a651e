from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from pocket_ledger.crud import crud_saved_filter
from pocket_ledger.models import saved_filter as filter_models
from pocket_ledger.models.transaction import TransactionResponse
from pocket_ledger.db.core import get_db, NotFoundError
from pocket_ledger.dependencies import get_current_user_id

router = APIRouter(
    prefix="/saved-filters",
    tags=["saved-filters"],
)


@router.post("/", response_model=filter_models.SavedFilterResponse, status_code=status.HTTP_201_CREATED)
def create_saved_filter(
    saved_filter: filter_models.SavedFilterCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        db_filter = crud_saved_filter.create_db_saved_filter(db=db, user_id=user_id, filter_data=saved_filter)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return crud_saved_filter.build_filter_response(db_filter)


@router.get("/", response_model=List[filter_models.SavedFilterResponse])
def read_saved_filters(
    favorites_only: bool = False,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """Saved filters by name; `favorites_only` narrows to starred ones"""
    filters = crud_saved_filter.read_db_saved_filters(db=db, user_id=user_id, favorites_only=favorites_only)
    return [crud_saved_filter.build_filter_response(f) for f in filters]


@router.get("/{filter_id}", response_model=filter_models.SavedFilterResponse)
def read_saved_filter(
    filter_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    db_filter = crud_saved_filter.read_db_saved_filter(db=db, filter_id=filter_id, user_id=user_id)
    if db_filter is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Saved filter not found")
    return crud_saved_filter.build_filter_response(db_filter)


@router.get("/{filter_id}/transactions", response_model=List[TransactionResponse])
def read_saved_filter_transactions(
    filter_id: int,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_saved_filter.apply_saved_filter(db=db, filter_id=filter_id, user_id=user_id, skip=skip, limit=limit)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.put("/{filter_id}", response_model=filter_models.SavedFilterResponse)
def update_saved_filter(
    filter_id: int,
    saved_filter: filter_models.SavedFilterUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        db_filter = crud_saved_filter.update_db_saved_filter(
            db=db, filter_id=filter_id, user_id=user_id, filter_updates=saved_filter
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return crud_saved_filter.build_filter_response(db_filter)


@router.post("/{filter_id}/favorite", response_model=filter_models.SavedFilterResponse)
def toggle_favorite(
    filter_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        db_filter = crud_saved_filter.toggle_filter_favorite(db=db, filter_id=filter_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return crud_saved_filter.build_filter_response(db_filter)


@router.delete("/{filter_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_saved_filter(
    filter_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        crud_saved_filter.delete_db_saved_filter(db=db, filter_id=filter_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
