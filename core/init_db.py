import logging
import time
from decimal import Decimal

from sqlalchemy.exc import OperationalError

from core.auth import hash_password
from core.config import settings
from core.database import engine, SessionLocal
from core.models import Base, Coin, User

logger = logging.getLogger(__name__)

DEFAULT_COINS = [
    {"name": "Bitcoin", "symbol": "BTC", "price": "43123.45", "market_cap": "810500000000",
     "change_24h": "2.30", "description": "The original cryptocurrency."},
    {"name": "Ethereum", "symbol": "ETH", "price": "2415.78", "market_cap": "278900000000",
     "change_24h": "5.80", "description": "A decentralized software platform."},
    {"name": "Cardano", "symbol": "ADA", "price": "1.24", "market_cap": "41500000000",
     "change_24h": "-1.20", "description": "A proof-of-stake blockchain platform."},
    {"name": "Solana", "symbol": "SOL", "price": "92.67", "market_cap": "33200000000",
     "change_24h": "3.40", "description": "A high-performance blockchain."},
]


def seed_defaults(db) -> None:
    if settings.SEED_DEFAULT_COINS and db.query(Coin).count() == 0:
        for coin in DEFAULT_COINS:
            db.add(Coin(
                name=coin["name"],
                symbol=coin["symbol"],
                price=Decimal(coin["price"]),
                market_cap=Decimal(coin["market_cap"]),
                change_24h=Decimal(coin["change_24h"]),
                description=coin["description"],
                is_active=True,
                is_default=True,
                is_locked=False,
            ))
        logger.info("Seeded %s default coins", len(DEFAULT_COINS))

    if settings.ADMIN_PASSWORD and not db.query(User).filter(User.is_admin.is_(True)).first():
        db.add(User(
            username=settings.ADMIN_USERNAME,
            password=hash_password(settings.ADMIN_PASSWORD),
            is_admin=True,
        ))
        logger.info("Created admin user %s", settings.ADMIN_USERNAME)

    db.commit()


def init_db():
    logger.info("Creating database tables...")

    for attempt in range(1, 8):
        try:
            Base.metadata.create_all(bind=engine)
            break
        except OperationalError as e:
            logger.warning("[init_db] DB not ready (attempt %s/7): %s", attempt, e)
            time.sleep(min(2 * attempt, 10))
    else:
        raise RuntimeError("Database not reachable after retries. Startup aborted.")

    db = SessionLocal()
    try:
        seed_defaults(db)
    finally:
        db.close()
    logger.info("Database ready.")
