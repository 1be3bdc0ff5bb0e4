import math
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from core.exceptions import ValidationError
from core.models import Coin, Transaction, TransactionStatus, User
from ledger.store import QUANTUM

MAX_PAGE_SIZE = 100
RECENT_LIMIT = 5

STATUSES = (
    TransactionStatus.PENDING_VERIFICATION,
    TransactionStatus.COMPLETED,
    TransactionStatus.REJECTED,
)


def _check_page(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationError("page must be 1 or greater", {"page": page})
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}", {"limit": limit})


def _newest_first(query):
    # id breaks ties between rows created within the same clock tick
    return query.order_by(Transaction.created_at.desc(), Transaction.id.desc())


def transaction_row(txn: Transaction) -> dict:
    return {
        "id": txn.id,
        "reference": txn.reference,
        "userId": txn.user_id,
        "coinId": txn.coin_id,
        "type": txn.type,
        "amount": txn.amount,
        "price": txn.price,
        "totalValue": txn.total_value,
        "paymentMethod": txn.payment_method,
        "status": txn.status,
        "metadata": txn.meta or {},
        "createdAt": txn.created_at,
        "updatedAt": txn.updated_at,
    }


def _listing_row(txn: Transaction) -> dict:
    return {
        "transaction": transaction_row(txn),
        "user": {"id": txn.user.id, "username": txn.user.username},
        "coin": {"id": txn.coin.id, "name": txn.coin.name, "symbol": txn.coin.symbol},
    }


def _paginate(query, page: int, limit: int):
    total = query.count()
    rows = (
        _newest_first(query)
        .options(joinedload(Transaction.user), joinedload(Transaction.coin))
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, {
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": math.ceil(total / limit),
    }


def list_transactions(db: Session, status: Optional[str] = None, page: int = 1, limit: int = 20):
    _check_page(page, limit)
    if status is not None and status not in STATUSES:
        raise ValidationError("Unknown transaction status", {"status": status, "allowed": list(STATUSES)})

    query = db.query(Transaction)
    if status:
        query = query.filter(Transaction.status == status)

    rows, pagination = _paginate(query, page, limit)
    return {"transactions": [_listing_row(t) for t in rows], "pagination": pagination}


def list_user_transactions(db: Session, user_id: int, page: int = 1, limit: int = 20):
    _check_page(page, limit)
    query = db.query(Transaction).filter(Transaction.user_id == user_id)

    rows, pagination = _paginate(query, page, limit)
    return {"transactions": [_listing_row(t) for t in rows], "pagination": pagination}


def get_dashboard_stats(db: Session):
    total_users = db.query(func.count(User.id)).scalar() or 0
    active_coins = db.query(func.count(Coin.id)).filter(Coin.is_active.is_(True)).scalar() or 0
    total_transactions = db.query(func.count(Transaction.id)).scalar() or 0
    pending = (
        db.query(func.count(Transaction.id))
        .filter(Transaction.status == TransactionStatus.PENDING_VERIFICATION)
        .scalar()
        or 0
    )

    volume = db.query(func.coalesce(func.sum(Transaction.total_value), 0)).scalar()
    total_volume = Decimal(str(volume or 0)).quantize(QUANTUM)

    recent = (
        _newest_first(db.query(Transaction))
        .options(joinedload(Transaction.user), joinedload(Transaction.coin))
        .limit(RECENT_LIMIT)
        .all()
    )

    return {
        "totalUsers": int(total_users),
        "activeCoins": int(active_coins),
        "totalTransactions": int(total_transactions),
        "totalVolume": total_volume,
        "pendingTransactions": int(pending),
        "recentTransactions": [
            {
                "id": t.id,
                "type": t.type,
                "amount": t.amount,
                "totalValue": t.total_value,
                "status": t.status,
                "createdAt": t.created_at,
                "coinSymbol": t.coin.symbol,
                "username": t.user.username,
            }
            for t in recent
        ],
    }


def get_pending_summary(db: Session):
    pending = (
        _newest_first(
            db.query(Transaction).filter(Transaction.status == TransactionStatus.PENDING_VERIFICATION)
        )
        .options(joinedload(Transaction.user), joinedload(Transaction.coin))
        .all()
    )

    rows = []
    for txn in pending:
        row = _listing_row(txn)
        row["user"]["email"] = txn.user.email
        rows.append(row)

    return {
        "pendingTransactions": rows,
        "summary": {
            "totalPending": len(pending),
            "totalValue": sum((Decimal(str(t.total_value)) for t in pending), Decimal("0")),
        },
    }
