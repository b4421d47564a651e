from contextlib import asynccontextmanager
from fastapi import FastAPI

from .db.core import init_db
from .logging_config import setup_logging, get_logger
from .routers.users import router as users_router
from .routers.accounts import router as accounts_router
from .routers.transactions import router as transactions_router
from .routers.transfers import router as transfers_router
from .routers.reconciliation import router as reconciliation_router
from .routers.recurring import router as recurring_router
from .routers.budgets import router as budgets_router
from .routers.categories import router as categories_router
from .routers.goals import router as goals_router
from .routers.net_worth import router as net_worth_router
from .routers.investments import router as investments_router
from .routers.reminders import router as reminders_router
from .routers.imports import router as imports_router
from .routers.dashboard import router as dashboard_router
from .routers.saved_filters import router as saved_filters_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging()
    init_db()
    logger.info("Pocket Ledger API started")
    yield


app = FastAPI(title="Pocket Ledger API", lifespan=lifespan)

app.include_router(users_router)
app.include_router(accounts_router)
app.include_router(transactions_router)
app.include_router(transfers_router)
app.include_router(reconciliation_router)
app.include_router(recurring_router)
app.include_router(budgets_router)
app.include_router(categories_router)
app.include_router(goals_router)
app.include_router(net_worth_router)
app.include_router(investments_router)
app.include_router(reminders_router)
app.include_router(imports_router)
app.include_router(dashboard_router)
app.include_router(saved_filters_router)


@app.get("/")
def read_root():
    return "Server is running."
