import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from coins.main import router as coin_router
from core.config import settings
from core.exceptions import AppException
from core.handlers import app_exception_handler
from core.init_db import init_db
from core.rate_limit import limiter
from stats.main import router as stats_router
from transactions.main import admin_router as transaction_admin_router
from transactions.main import router as portfolio_router
from users.auth import router as auth_router
from users.main import router as user_admin_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.INIT_DB_ON_STARTUP:
        init_db()
    yield


app = FastAPI(title="Coin Ledger API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_exception_handler(AppException, app_exception_handler)

app.include_router(auth_router)
app.include_router(coin_router)
app.include_router(portfolio_router)
app.include_router(transaction_admin_router)
app.include_router(stats_router)
app.include_router(user_admin_router)


@app.get("/")
def health_check():
    return {"status": "healthy", "version": "1.0.0"}
