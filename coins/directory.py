from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from core.errors import ErrorCode, ErrorMessage
from core.exceptions import ConflictError, NotFoundError
from core.models import Coin, Holding, Transaction


@dataclass(frozen=True)
class CoinSnapshot:
    """Point-in-time view of a coin; later price moves do not reach it."""
    id: int
    symbol: str
    price: Decimal
    is_locked: bool


def get_coin(db: Session, coin_id: int) -> Coin:
    coin = db.query(Coin).filter(Coin.id == coin_id).first()
    if not coin:
        raise NotFoundError(ErrorCode.COIN_NOT_FOUND, ErrorMessage.COIN_NOT_FOUND, {"coinId": coin_id})
    return coin


def get_coin_snapshot(db: Session, coin_id: int) -> CoinSnapshot:
    coin = get_coin(db, coin_id)
    return CoinSnapshot(
        id=coin.id,
        symbol=coin.symbol,
        price=Decimal(str(coin.price)),
        is_locked=bool(coin.is_locked),
    )


def list_coins(db: Session, active_only: bool = False) -> list[Coin]:
    query = db.query(Coin)
    if active_only:
        query = query.filter(Coin.is_active.is_(True))
    return query.order_by(Coin.id.asc()).all()


def get_coin_by_symbol(db: Session, symbol: str) -> Optional[Coin]:
    return db.query(Coin).filter(Coin.symbol == symbol.upper()).first()


def create_coin(db: Session, **fields) -> Coin:
    symbol = fields["symbol"].upper()
    if get_coin_by_symbol(db, symbol):
        raise ConflictError(
            ErrorCode.COIN_ALREADY_EXISTS,
            f"Coin with symbol {symbol} already exists",
            {"symbol": symbol},
        )

    coin = Coin(**{**fields, "symbol": symbol})
    db.add(coin)
    db.commit()
    db.refresh(coin)
    return coin


def update_coin(db: Session, coin_id: int, **updates) -> Coin:
    coin = get_coin(db, coin_id)

    if "symbol" in updates and updates["symbol"] is not None:
        symbol = updates["symbol"].upper()
        existing = get_coin_by_symbol(db, symbol)
        if existing and existing.id != coin.id:
            raise ConflictError(
                ErrorCode.COIN_ALREADY_EXISTS,
                f"Coin with symbol {symbol} already exists",
                {"symbol": symbol},
            )
        updates["symbol"] = symbol

    for key, value in updates.items():
        setattr(coin, key, value)

    db.commit()
    db.refresh(coin)
    return coin


def delete_coin(db: Session, coin_id: int) -> None:
    coin = db.query(Coin).filter(Coin.id == coin_id).first()
    # default coins are protected
    if not coin or coin.is_default:
        raise NotFoundError(ErrorCode.COIN_NOT_FOUND, ErrorMessage.COIN_NOT_DELETABLE, {"coinId": coin_id})

    referenced = (
        db.query(Transaction.id).filter(Transaction.coin_id == coin_id).first()
        or db.query(Holding.id).filter(Holding.coin_id == coin_id).first()
    )
    if referenced:
        raise ConflictError(ErrorCode.COIN_IN_USE, "Coin has ledger records and cannot be deleted", {"coinId": coin_id})

    db.delete(coin)
    db.commit()
