from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from pocket_ledger.db.core import InvestmentHoldingDB, AccountDB, NotFoundError, AssetType
from pocket_ledger.models.investment import (
    InvestmentHoldingCreate,
    InvestmentHoldingUpdate,
    InvestmentHoldingResponse,
    BuySharesRequest,
    HoldingGainLoss,
    PortfolioSummary,
)
from pocket_ledger.logging_config import get_logger

logger = get_logger(__name__)


def _get_account(db: Session, account_id: int, user_id: int) -> AccountDB:
    account = db.query(AccountDB).filter(AccountDB.id == account_id, AccountDB.user_id == user_id).first()
    if not account:
        raise NotFoundError(f"Account with id {account_id} not found.")
    return account


# ===== DATABASE OPERATIONS - INVESTMENT HOLDINGS =====

def create_db_investment_holding(db: Session, user_id: int, holding_data: InvestmentHoldingCreate) -> InvestmentHoldingDB:
    _get_account(db, holding_data.account_id, user_id)

    existing_holding = read_db_holding_by_symbol(db, holding_data.account_id, holding_data.symbol)
    if existing_holding:
        raise ValueError(f"Holding with symbol {holding_data.symbol} already exists in this account.")

    db_holding = InvestmentHoldingDB(
        user_id=user_id,
        **holding_data.model_dump(),
        last_updated=datetime.utcnow(),
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    try:
        db.add(db_holding)
        db.commit()
        db.refresh(db_holding)
        return db_holding
    except IntegrityError:
        db.rollback()
        raise ValueError("Holding creation failed due to database constraint.")


def read_db_investment_holding(db: Session, holding_id: int, user_id: int) -> Optional[InvestmentHoldingDB]:
    return db.query(InvestmentHoldingDB).filter(
        InvestmentHoldingDB.id == holding_id,
        InvestmentHoldingDB.user_id == user_id
    ).first()


def read_db_holding_by_symbol(db: Session, account_id: int, symbol: str) -> Optional[InvestmentHoldingDB]:
    return db.query(InvestmentHoldingDB).filter(
        InvestmentHoldingDB.account_id == account_id,
        InvestmentHoldingDB.symbol == symbol.upper()
    ).first()


def read_db_investment_holdings(db: Session, user_id: int, account_id: Optional[int] = None) -> List[InvestmentHoldingDB]:
    query = db.query(InvestmentHoldingDB).filter(InvestmentHoldingDB.user_id == user_id)
    if account_id is not None:
        _get_account(db, account_id, user_id)
        query = query.filter(InvestmentHoldingDB.account_id == account_id)
    return query.order_by(InvestmentHoldingDB.symbol).all()


def update_db_investment_holding(db: Session, holding_id: int, user_id: int, holding_updates: InvestmentHoldingUpdate) -> InvestmentHoldingDB:
    db_holding = read_db_investment_holding(db, holding_id, user_id)
    if not db_holding:
        raise NotFoundError(f"Holding with id {holding_id} not found.")

    update_data = holding_updates.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        if value is None and field in ('symbol', 'shares', 'cost_basis', 'asset_type'):
            raise ValueError(f"Field '{field}' cannot be null")
        if field == 'asset_type':
            setattr(db_holding, field, AssetType(value.value))
        else:
            setattr(db_holding, field, value)

    db_holding.last_updated = datetime.utcnow()
    db_holding.updated_at = datetime.utcnow()

    try:
        db.commit()
        db.refresh(db_holding)
        return db_holding
    except IntegrityError:
        db.rollback()
        raise ValueError("Holding update failed.")


def delete_db_investment_holding(db: Session, holding_id: int, user_id: int) -> bool:
    db_holding = read_db_investment_holding(db, holding_id, user_id)
    if not db_holding:
        raise NotFoundError(f"Holding with id {holding_id} not found.")

    try:
        db.delete(db_holding)
        db.commit()
        return True
    except Exception as e:
        db.rollback()
        raise ValueError(f"Failed to delete holding: {str(e)}")


def update_holding_price(db: Session, holding_id: int, user_id: int, new_price: Decimal) -> InvestmentHoldingDB:
    return update_db_investment_holding(db, holding_id, user_id, InvestmentHoldingUpdate(current_price=new_price))


# ===== TRADES =====

def buy_shares(db: Session, user_id: int, purchase: BuySharesRequest) -> InvestmentHoldingDB:
    """Add to the account's holding of a symbol, creating it on first purchase"""
    _get_account(db, purchase.account_id, user_id)

    additional_cost = round(purchase.shares * purchase.price_per_share, 2)
    db_holding = read_db_holding_by_symbol(db, purchase.account_id, purchase.symbol)

    if db_holding:
        db_holding.shares = Decimal(db_holding.shares) + purchase.shares
        db_holding.cost_basis = Decimal(db_holding.cost_basis) + additional_cost
        db_holding.current_price = purchase.price_per_share
    else:
        db_holding = InvestmentHoldingDB(
            user_id=user_id,
            account_id=purchase.account_id,
            symbol=purchase.symbol,
            name=purchase.name,
            shares=purchase.shares,
            cost_basis=additional_cost,
            current_price=purchase.price_per_share,
            asset_type=AssetType(purchase.asset_type.value),
            created_at=datetime.utcnow()
        )
        db.add(db_holding)

    db_holding.last_updated = datetime.utcnow()
    db_holding.updated_at = datetime.utcnow()

    try:
        db.commit()
        db.refresh(db_holding)
    except IntegrityError:
        db.rollback()
        raise ValueError("Share purchase failed due to database constraint.")

    logger.info(f"Bought {purchase.shares} {purchase.symbol} in account {purchase.account_id}")
    return db_holding


def sell_shares(db: Session, holding_id: int, user_id: int, shares_to_sell: Decimal,
                price_per_share: Decimal) -> Optional[InvestmentHoldingDB]:
    """
    Sell part or all of a holding. Cost basis shrinks in proportion to the
    shares sold. Selling everything deletes the holding and returns None.
    """
    db_holding = read_db_investment_holding(db, holding_id, user_id)
    if not db_holding:
        raise NotFoundError(f"Holding with id {holding_id} not found.")

    owned = Decimal(db_holding.shares)
    if shares_to_sell > owned:
        raise ValueError("Cannot sell more shares than owned")

    remaining_shares = owned - shares_to_sell
    if remaining_shares == 0:
        symbol = db_holding.symbol
        db.delete(db_holding)
        db.commit()
        logger.info(f"Sold entire {symbol} holding {holding_id}")
        return None

    sale_ratio = shares_to_sell / owned
    db_holding.shares = remaining_shares
    db_holding.cost_basis = round(Decimal(db_holding.cost_basis) * (1 - sale_ratio), 2)
    db_holding.current_price = price_per_share
    db_holding.last_updated = datetime.utcnow()
    db_holding.updated_at = datetime.utcnow()

    db.commit()
    db.refresh(db_holding)
    return db_holding


# ===== UTILITY FUNCTIONS =====

def calculate_holding_value(holding) -> Decimal:
    """Market value; zero when no price is known"""
    if not holding.current_price:
        return Decimal("0.00")
    return round(Decimal(holding.shares) * Decimal(holding.current_price), 2)


def calculate_holding_gain_loss(holding) -> HoldingGainLoss:
    cost_basis = Decimal(holding.cost_basis)
    amount = calculate_holding_value(holding) - cost_basis
    percentage = float(amount / cost_basis * 100) if cost_basis != 0 else 0.0
    return HoldingGainLoss(amount=amount, percentage=round(percentage, 2))


def get_portfolio_summary(db: Session, user_id: int, account_id: Optional[int] = None) -> PortfolioSummary:
    holdings = read_db_investment_holdings(db, user_id, account_id)

    total_value = Decimal("0.00")
    total_cost_basis = Decimal("0.00")
    for holding in holdings:
        total_value += calculate_holding_value(holding)
        total_cost_basis += Decimal(holding.cost_basis)

    total_gain_loss = total_value - total_cost_basis
    percentage = float(total_gain_loss / total_cost_basis * 100) if total_cost_basis != 0 else 0.0

    return PortfolioSummary(
        holdings=[InvestmentHoldingResponse.model_validate(h) for h in holdings],
        total_value=total_value,
        total_cost_basis=total_cost_basis,
        total_gain_loss=total_gain_loss,
        total_gain_loss_percentage=round(percentage, 2)
    )
