from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.auth import get_current_admin, get_current_user
from core.database import get_db
from core.exceptions import ValidationError
from core.models import User
from ledger import store
from stats.schemas import TransactionListResponse
from stats.stats import list_user_transactions, transaction_row
from transactions.bulk import bulk_verify
from transactions.lifecycle import PaymentProof, submit_buy, submit_withdrawal, verify
from transactions.schemas import (
    BulkActionRequest,
    BulkActionResponse,
    BuyRequest,
    PortfolioResponse,
    TransactionResponse,
    VerifyRequest,
    WithdrawRequest,
)

router = APIRouter(prefix="/api/portfolio", tags=["Portfolio"])
admin_router = APIRouter(prefix="/api/admin/transactions", tags=["Admin"])

VERIFY_DECISIONS = {"approved": "approve", "rejected": "reject"}
BULK_DECISIONS = {"approve": "approve", "decline": "reject"}


@router.get("", response_model=PortfolioResponse)
def get_portfolio(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    holdings = store.get_user_holdings(db, current_user.id)

    return {
        "success": True,
        "data": [
            {
                "id": h.id,
                "coinId": h.coin_id,
                "amount": h.amount,
                "purchasePrice": h.purchase_price,
                "purchaseDate": h.purchase_date,
                "coin": {
                    "id": h.coin.id,
                    "name": h.coin.name,
                    "symbol": h.coin.symbol,
                    "price": h.coin.price,
                    "isLocked": h.coin.is_locked,
                },
            }
            for h in holdings
        ],
    }


@router.get("/transactions", response_model=TransactionListResponse)
def transaction_history(
    page: int = Query(1),
    limit: int = Query(20),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"success": True, "data": list_user_transactions(db, current_user.id, page, limit)}


@router.post("/buy", response_model=TransactionResponse, status_code=201)
def buy_coin(
    payload: BuyRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    txn = submit_buy(
        db,
        user_id=current_user.id,
        coin_id=payload.coinId,
        amount=payload.amount,
        proof=PaymentProof(
            transaction_hash=payload.transactionHash,
            sender_address=payload.senderAddress,
            payment_method=payload.paymentMethod,
        ),
    )

    return {
        "success": True,
        "message": "Purchase submitted, awaiting payment verification",
        "data": transaction_row(txn),
    }


@router.post("/withdraw", response_model=TransactionResponse, status_code=201)
def withdraw_coin(
    payload: WithdrawRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    txn = submit_withdrawal(
        db,
        user_id=current_user.id,
        coin_id=payload.coinId,
        amount=payload.amount,
        withdrawal_address=payload.withdrawalAddress,
    )

    return {
        "success": True,
        "message": "Withdrawal request submitted successfully",
        "data": transaction_row(txn),
    }


@admin_router.patch("/{transaction_id}/verify", response_model=TransactionResponse)
def verify_transaction(
    transaction_id: int,
    payload: VerifyRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    decision = VERIFY_DECISIONS.get(payload.status)
    if decision is None:
        raise ValidationError("Status must be either 'approved' or 'rejected'", {"status": payload.status})

    txn = verify(db, transaction_id, decision, payload.adminNotes, admin_id=admin.id)

    return {
        "success": True,
        "message": f"Transaction {payload.status} successfully",
        "data": transaction_row(txn),
    }


@admin_router.post("/bulk-action", response_model=BulkActionResponse)
def bulk_action(
    payload: BulkActionRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    decision = BULK_DECISIONS.get(payload.action)
    if decision is None:
        raise ValidationError("Action must be either 'approve' or 'decline'", {"action": payload.action})

    result = bulk_verify(db, payload.transactionIds, decision, payload.adminNotes, admin_id=admin.id)

    return {
        "success": True,
        "message": f"Successfully {payload.action}d {result.processedCount} transactions",
        "data": result,
    }
