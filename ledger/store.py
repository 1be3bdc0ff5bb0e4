"""
Row level access to the holdings ledger.

Nothing here commits: callers own the unit of work and commit or roll back
the status change together with the holding write.
"""

import logging
from contextlib import contextmanager
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.exceptions import InsufficientBalanceError, StorageError, ValidationError
from core.models import Holding, Transaction, TransactionStatus

logger = logging.getLogger(__name__)

QUANTUM = Decimal("0.00000001")
ZERO = Decimal("0")
# Numeric(18, 8) leaves 10 integer digits
MAX_LEDGER_VALUE = Decimal(10) ** 10
CREDIT_ATTEMPTS = 3


@contextmanager
def atomic(db: Session):
    """Commit everything written inside the block, or nothing at all."""
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Ledger write rolled back: %s", e)
        raise StorageError(details={"reason": e.__class__.__name__}) from e
    except Exception:
        db.rollback()
        raise


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_ledger(value: Decimal) -> Decimal:
    return value.quantize(QUANTUM, rounding=ROUND_HALF_EVEN)


def _plain(value: Decimal) -> str:
    return format(value.normalize(), "f")


def weighted_average(
    old_amount: Decimal,
    old_price: Decimal,
    add_amount: Decimal,
    add_price: Decimal,
) -> tuple[Decimal, Decimal]:
    new_amount = old_amount + add_amount
    new_price = (old_amount * old_price + add_amount * add_price) / new_amount
    return new_amount, to_ledger(new_price)


# HOLDINGS

def get_holding(db: Session, user_id: int, coin_id: int, for_update: bool = False) -> Optional[Holding]:
    query = db.query(Holding).filter(Holding.user_id == user_id, Holding.coin_id == coin_id)
    if for_update:
        # reload over the identity map, writes may have gone around the ORM
        query = query.with_for_update().populate_existing()
    return query.first()


def get_user_holdings(db: Session, user_id: int) -> list[Holding]:
    return (
        db.query(Holding)
        .filter(Holding.user_id == user_id)
        .order_by(Holding.coin_id.asc())
        .all()
    )


def credit_holding(db: Session, user_id: int, coin_id: int, amount: Decimal, price: Decimal) -> Holding:
    """
    Add ``amount`` bought at ``price`` using the weighted-average merge.

    The merge is written with a compare-and-set on the amount and price it
    was computed from, so a concurrent writer makes the update miss instead
    of being overwritten. A miss is re-read and retried.
    """
    amount = to_decimal(amount)
    price = to_decimal(price)

    for _ in range(CREDIT_ATTEMPTS):
        holding = get_holding(db, user_id, coin_id, for_update=True)

        if holding is None:
            holding = Holding(user_id=user_id, coin_id=coin_id, amount=amount, purchase_price=price)
            db.add(holding)
            # a concurrent first credit of the same pair fails here on the unique constraint
            db.flush()
            return holding

        new_amount, new_price = weighted_average(holding.amount, holding.purchase_price, amount, price)
        if new_amount >= MAX_LEDGER_VALUE:
            raise ValidationError(
                "Holding would exceed the ledger limit",
                {"amount": str(new_amount), "max": str(MAX_LEDGER_VALUE)},
            )

        updated = (
            db.query(Holding)
            .filter(
                Holding.id == holding.id,
                Holding.amount == holding.amount,
                Holding.purchase_price == holding.purchase_price,
            )
            .update({Holding.amount: new_amount, Holding.purchase_price: new_price}, synchronize_session=False)
        )
        if updated == 1:
            db.refresh(holding)
            return holding

        logger.warning("Holding user=%s coin=%s changed during credit, retrying", user_id, coin_id)

    raise StorageError(details={"reason": "HoldingContention", "userId": user_id, "coinId": coin_id})


def debit_holding(db: Session, user_id: int, coin_id: int, amount: Decimal, symbol: str = "") -> Decimal:
    """
    Remove ``amount`` from the holding, deleting the row when it reaches zero.

    The balance check is part of the UPDATE itself, so two debits racing for
    the same holding can never both pass it.

    Returns the holding's average purchase price at the time of the debit so
    the amount can later be credited back at the same cost basis.
    """
    amount = to_decimal(amount)

    debited = (
        db.query(Holding)
        .filter(
            Holding.user_id == user_id,
            Holding.coin_id == coin_id,
            Holding.amount >= amount,
        )
        .update({Holding.amount: Holding.amount - amount}, synchronize_session=False)
    )
    holding = get_holding(db, user_id, coin_id, for_update=True)

    if not debited:
        current = holding.amount if holding is not None else ZERO
        raise InsufficientBalanceError(
            f"Insufficient balance. You have {_plain(current)} {symbol}".rstrip()
            + f", but tried to withdraw {_plain(amount)}",
            {"available": str(current), "requested": str(amount)},
        )

    price_at_debit = holding.purchase_price

    if holding.amount == ZERO:
        logger.info("Holding user=%s coin=%s emptied, removing row", user_id, coin_id)
        db.delete(holding)
        db.flush()

    return price_at_debit


# TRANSACTIONS

def get_transaction(db: Session, transaction_id: int) -> Optional[Transaction]:
    return db.query(Transaction).filter(Transaction.id == transaction_id).first()


def claim_pending(db: Session, transaction_id: int, new_status: str, meta: dict) -> bool:
    """
    Move a transaction out of ``pending_verification``.

    The WHERE clause is the guard: only one writer can see the row still
    pending, every other concurrent caller gets ``False``.
    """
    updated = (
        db.query(Transaction)
        .filter(
            Transaction.id == transaction_id,
            Transaction.status == TransactionStatus.PENDING_VERIFICATION,
        )
        .update({Transaction.status: new_status, Transaction.meta: meta}, synchronize_session=False)
    )
    return updated == 1
