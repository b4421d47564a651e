from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import func
from typing import List, Optional
from datetime import datetime

from pocket_ledger.db.core import CategoryDB, TransactionDB, NotFoundError, ReferentialIntegrityError, CategoryType
from pocket_ledger.models.category import CategoryCreate, CategoryUpdate
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CATEGORIES = [
    ("Salary", CategoryType.INCOME, "#10b981"),
    ("Freelance", CategoryType.INCOME, "#34d399"),
    ("Investments", CategoryType.INCOME, "#6ee7b7"),
    ("Other Income", CategoryType.INCOME, "#a7f3d0"),
    ("Groceries", CategoryType.EXPENSE, "#ef4444"),
    ("Dining", CategoryType.EXPENSE, "#f97316"),
    ("Transportation", CategoryType.EXPENSE, "#f59e0b"),
    ("Utilities", CategoryType.EXPENSE, "#eab308"),
    ("Rent/Mortgage", CategoryType.EXPENSE, "#84cc16"),
    ("Healthcare", CategoryType.EXPENSE, "#06b6d4"),
    ("Entertainment", CategoryType.EXPENSE, "#8b5cf6"),
    ("Shopping", CategoryType.EXPENSE, "#ec4899"),
    ("Insurance", CategoryType.EXPENSE, "#6366f1"),
    ("Other Expenses", CategoryType.EXPENSE, "#64748b"),
]

IN_USE_MESSAGE = "Cannot delete category with associated transactions"


def _name_taken(db: Session, user_id: int, name: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(CategoryDB).filter(CategoryDB.user_id == user_id, CategoryDB.name.ilike(name))
    if exclude_id is not None:
        query = query.filter(CategoryDB.id != exclude_id)
    return query.first() is not None


def create_db_category(db: Session, user_id: int, category_data: CategoryCreate) -> CategoryDB:
    if _name_taken(db, user_id, category_data.name):
        raise ValueError(f"Category with name '{category_data.name}' already exists")

    db_category = CategoryDB(
        user_id=user_id,
        name=category_data.name,
        category_type=CategoryType(category_data.category_type.value),
        color=category_data.color,
        icon=category_data.icon,
        sort_order=category_data.sort_order,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    try:
        db.add(db_category)
        db.commit()
        db.refresh(db_category)
        return db_category
    except IntegrityError:
        db.rollback()
        raise ValueError("Category creation failed due to a database constraint.")


def read_db_categories(db: Session, user_id: int, category_type: Optional[CategoryType] = None) -> List[CategoryDB]:
    """User categories in display order"""
    query = db.query(CategoryDB).filter(CategoryDB.user_id == user_id)
    if category_type:
        query = query.filter(CategoryDB.category_type == CategoryType(category_type.value))
    return query.order_by(CategoryDB.sort_order, CategoryDB.name).all()


def read_db_category(db: Session, category_id: int, user_id: int) -> Optional[CategoryDB]:
    return db.query(CategoryDB).filter(CategoryDB.id == category_id, CategoryDB.user_id == user_id).first()


def update_db_category(db: Session, category_id: int, user_id: int, category_updates: CategoryUpdate) -> CategoryDB:
    """Update a category. Renames do not touch transactions already filed under the old name."""
    db_category = read_db_category(db, category_id, user_id)
    if not db_category:
        raise NotFoundError(f"Category with id {category_id} not found")

    update_data = category_updates.model_dump(exclude_unset=True)

    if update_data.get('name') and _name_taken(db, user_id, update_data['name'], exclude_id=category_id):
        raise ValueError(f"Category with name '{update_data['name']}' already exists")

    for field, value in update_data.items():
        if value is None and field != 'icon':
            raise ValueError(f"Field '{field}' cannot be null")
        if field == 'category_type':
            setattr(db_category, field, CategoryType(value.value))
        else:
            setattr(db_category, field, value)

    db_category.updated_at = datetime.utcnow()

    try:
        db.commit()
        db.refresh(db_category)
        return db_category
    except IntegrityError:
        db.rollback()
        raise ValueError("Category update failed due to a database constraint.")


def delete_db_category(db: Session, category_id: int, user_id: int) -> bool:
    """Delete a category that no transaction is filed under"""
    db_category = read_db_category(db, category_id, user_id)
    if not db_category:
        raise NotFoundError(f"Category with id {category_id} not found")

    in_use = db.query(TransactionDB).filter(
        TransactionDB.user_id == user_id,
        func.lower(TransactionDB.category) == db_category.name.lower()
    ).first()
    if in_use:
        raise ReferentialIntegrityError(IN_USE_MESSAGE)

    try:
        db.delete(db_category)
        db.commit()
        return True
    except IntegrityError:
        db.rollback()
        raise ReferentialIntegrityError(IN_USE_MESSAGE)


def ensure_default_categories(db: Session, user_id: int) -> List[CategoryDB]:
    """Seed the standard income and expense categories for a user who has none"""
    categories = read_db_categories(db, user_id)
    if categories:
        return categories

    for order, (name, category_type, color) in enumerate(DEFAULT_CATEGORIES, start=1):
        db.add(CategoryDB(
            user_id=user_id,
            name=name,
            category_type=category_type,
            color=color,
            sort_order=order,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow()
        ))

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError("Default category creation failed due to a database constraint.")

    logger.info(f"Created {len(DEFAULT_CATEGORIES)} default categories for user {user_id}")
    return read_db_categories(db, user_id)
