from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional

from pocket_ledger.crud import crud_investment
from pocket_ledger.models import investment as investment_models
from pocket_ledger.db.core import get_db, NotFoundError
from pocket_ledger.dependencies import get_current_user_id

router = APIRouter(
    prefix="/investments",
    tags=["investments"],
)


@router.post("/holdings", response_model=investment_models.InvestmentHoldingResponse, status_code=status.HTTP_201_CREATED)
def create_holding(
    holding: investment_models.InvestmentHoldingCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_investment.create_db_investment_holding(db=db, user_id=user_id, holding_data=holding)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/holdings", response_model=List[investment_models.InvestmentHoldingResponse])
def read_holdings(
    account_id: Optional[int] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    return crud_investment.read_db_investment_holdings(db=db, user_id=user_id, account_id=account_id)


@router.get("/portfolio", response_model=investment_models.PortfolioSummary)
def read_portfolio(
    account_id: Optional[int] = None,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """Market value, cost basis and gain/loss across holdings"""
    return crud_investment.get_portfolio_summary(db=db, user_id=user_id, account_id=account_id)


@router.post("/buy", response_model=investment_models.InvestmentHoldingResponse)
def buy(
    purchase: investment_models.BuySharesRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """
    Buy shares. An existing holding of the same symbol in the account grows;
    otherwise a new holding is opened.
    """
    try:
        return crud_investment.buy_shares(db=db, user_id=user_id, purchase=purchase)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/holdings/{holding_id}/sell", response_model=Optional[investment_models.InvestmentHoldingResponse])
def sell(
    holding_id: int,
    sale: investment_models.SellSharesRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    """Sell shares. Returns null when the whole position was sold."""
    try:
        return crud_investment.sell_shares(
            db=db, holding_id=holding_id, user_id=user_id,
            shares_to_sell=sale.shares, price_per_share=sale.price_per_share
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/holdings/{holding_id}/price", response_model=investment_models.InvestmentHoldingResponse)
def update_price(
    holding_id: int,
    price: investment_models.PriceUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_investment.update_holding_price(
            db=db, holding_id=holding_id, user_id=user_id, new_price=price.current_price
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/holdings/{holding_id}", response_model=investment_models.InvestmentHoldingResponse)
def read_holding(
    holding_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    db_holding = crud_investment.read_db_investment_holding(db=db, holding_id=holding_id, user_id=user_id)
    if db_holding is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Holding not found")
    return db_holding


@router.get("/holdings/{holding_id}/gain-loss", response_model=investment_models.HoldingGainLoss)
def read_holding_gain_loss(
    holding_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    db_holding = crud_investment.read_db_investment_holding(db=db, holding_id=holding_id, user_id=user_id)
    if db_holding is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Holding not found")
    return crud_investment.calculate_holding_gain_loss(db_holding)


@router.put("/holdings/{holding_id}", response_model=investment_models.InvestmentHoldingResponse)
def update_holding(
    holding_id: int,
    holding: investment_models.InvestmentHoldingUpdate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        return crud_investment.update_db_investment_holding(
            db=db, holding_id=holding_id, user_id=user_id, holding_updates=holding
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/holdings/{holding_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_holding(
    holding_id: int,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id)
):
    try:
        crud_investment.delete_db_investment_holding(db=db, holding_id=holding_id, user_id=user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
