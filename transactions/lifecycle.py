"""
Lifecycle of a single ledger transaction.

    pending_verification --approve--> completed
    pending_verification --reject---> rejected

Buys never touch the holding until an admin approves the payment proof.
Withdrawals debit the holding as soon as they are requested and the debit is
credited back if the request is rejected. The status change and the holding
write always commit together.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from sqlalchemy.orm import Session

from coins.directory import get_coin_snapshot
from core.errors import ErrorCode, ErrorMessage
from core.exceptions import (
    AlreadyFinalizedError,
    LockedAssetError,
    NotFoundError,
    ValidationError,
)
from core.models import PaymentMethod, Transaction, TransactionStatus, TransactionType
from ledger import store
from ledger.audit import Decision, TransactionMetadata, VerificationAudit

logger = logging.getLogger(__name__)

DECISIONS = ("approve", "reject")
DEFAULT_ADMIN_NOTE = "Transaction manually verified by admin"


def new_reference() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class PaymentProof:
    transaction_hash: str
    sender_address: str
    payment_method: str


def _require_amount(amount) -> Decimal:
    try:
        value = store.to_decimal(amount)
    except InvalidOperation:
        raise ValidationError(ErrorMessage.AMOUNT_NOT_POSITIVE, {"amount": str(amount)})

    if not value.is_finite() or value <= 0:
        raise ValidationError(ErrorMessage.AMOUNT_NOT_POSITIVE, {"amount": str(amount)})
    if value >= store.MAX_LEDGER_VALUE:
        raise ValidationError(ErrorMessage.AMOUNT_TOO_LARGE, {"amount": str(amount)})
    if value != store.to_ledger(value):
        raise ValidationError("Amount supports at most 8 decimal places", {"amount": str(amount)})
    return value


def _total_value(amount: Decimal, price: Decimal) -> Decimal:
    # rounded half-even to 8 places like every stored ledger value
    total = store.to_ledger(amount * price)
    if total >= store.MAX_LEDGER_VALUE:
        raise ValidationError(ErrorMessage.AMOUNT_TOO_LARGE, {"totalValue": str(total)})
    return total


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


# SUBMISSION

def submit_buy(
    db: Session,
    user_id: int,
    coin_id: int,
    amount,
    proof: PaymentProof,
    id_factory: Callable[[], str] = new_reference,
) -> Transaction:
    amount = _require_amount(amount)

    if _blank(proof.transaction_hash) or _blank(proof.sender_address):
        raise ValidationError(ErrorMessage.PROOF_INCOMPLETE)
    if proof.payment_method not in PaymentMethod.ACCEPTED_FOR_BUY:
        raise ValidationError(ErrorMessage.INVALID_PAYMENT_METHOD, {"paymentMethod": proof.payment_method})

    coin = get_coin_snapshot(db, coin_id)
    total_value = _total_value(amount, coin.price)

    meta = TransactionMetadata(
        transactionHash=proof.transaction_hash.strip(),
        senderAddress=proof.sender_address.strip(),
        notes=f"Manual {proof.payment_method} payment pending verification",
    )

    txn = Transaction(
        reference=id_factory(),
        user_id=user_id,
        coin_id=coin.id,
        type=TransactionType.BUY,
        amount=amount,
        price=coin.price,
        total_value=total_value,
        payment_method=proof.payment_method,
        status=TransactionStatus.PENDING_VERIFICATION,
        meta=meta.dump(),
    )

    with store.atomic(db):
        db.add(txn)

    db.refresh(txn)
    logger.info(
        "%s payment received: transaction %s from %s (txn=%s, user=%s, %s %s)",
        proof.payment_method, meta.transactionHash, meta.senderAddress, txn.id, user_id, amount, coin.symbol,
    )
    return txn


def submit_withdrawal(
    db: Session,
    user_id: int,
    coin_id: int,
    amount,
    withdrawal_address: str,
    id_factory: Callable[[], str] = new_reference,
) -> Transaction:
    amount = _require_amount(amount)
    if _blank(withdrawal_address):
        raise ValidationError(ErrorMessage.WITHDRAWAL_ADDRESS_REQUIRED)

    coin = get_coin_snapshot(db, coin_id)
    if coin.is_locked:
        raise LockedAssetError({"coinId": coin.id, "symbol": coin.symbol})

    total_value = _total_value(amount, coin.price)

    with store.atomic(db):
        # optimistic debit: funds are reserved before any admin has looked at the request
        price_at_debit = store.debit_holding(db, user_id, coin.id, amount, coin.symbol)

        meta = TransactionMetadata(
            withdrawalAddress=withdrawal_address.strip(),
            notes="Withdrawal pending admin verification and processing",
            holdingPriceAtDebit=price_at_debit,
        )
        txn = Transaction(
            reference=id_factory(),
            user_id=user_id,
            coin_id=coin.id,
            type=TransactionType.SELL,
            amount=amount,
            price=coin.price,
            total_value=total_value,
            payment_method=PaymentMethod.CRYPTO_WITHDRAWAL,
            status=TransactionStatus.PENDING_VERIFICATION,
            meta=meta.dump(),
        )
        db.add(txn)

    db.refresh(txn)
    logger.info("Withdrawal requested: txn=%s user=%s %s %s to %s", txn.id, user_id, amount, coin.symbol, meta.withdrawalAddress)
    return txn


# VERIFICATION

def _apply_ledger_effect(db: Session, txn: Transaction, decision: Decision, meta: TransactionMetadata) -> None:
    if txn.type == TransactionType.BUY and decision == "approve":
        store.credit_holding(db, txn.user_id, txn.coin_id, txn.amount, txn.price)

    elif txn.type == TransactionType.SELL and decision == "reject":
        # compensate the optimistic debit at the cost basis it was taken at
        price = meta.holdingPriceAtDebit if meta.holdingPriceAtDebit is not None else txn.price
        store.credit_holding(db, txn.user_id, txn.coin_id, txn.amount, price)

    # approved sells were settled at submission, rejected buys never touched the ledger


def verify(
    db: Session,
    transaction_id: int,
    decision: Decision,
    admin_note: Optional[str] = None,
    admin_id: Optional[int] = None,
    bulk: bool = False,
) -> Transaction:
    if decision not in DECISIONS:
        raise ValidationError("Decision must be either 'approve' or 'reject'", {"decision": decision})

    txn = store.get_transaction(db, transaction_id)
    if not txn:
        raise NotFoundError(
            ErrorCode.TRANSACTION_NOT_FOUND,
            ErrorMessage.TRANSACTION_NOT_FOUND,
            {"transactionId": transaction_id},
        )

    if txn.status != TransactionStatus.PENDING_VERIFICATION:
        raise AlreadyFinalizedError(transaction_id, txn.status)

    new_status = TransactionStatus.COMPLETED if decision == "approve" else TransactionStatus.REJECTED
    meta = TransactionMetadata.load(txn.meta)
    entry = VerificationAudit(
        decision=decision,
        status=new_status,
        adminNote=admin_note.strip() if not _blank(admin_note) else DEFAULT_ADMIN_NOTE,
        adminId=admin_id,
        bulk=bulk,
    )

    with store.atomic(db):
        if not store.claim_pending(db, transaction_id, new_status, meta.with_verification(entry).dump()):
            # another reviewer finalized it between our read and our write
            raise AlreadyFinalizedError(transaction_id)
        _apply_ledger_effect(db, txn, decision, meta)

    db.refresh(txn)
    logger.info("Transaction %s %s -> %s by admin %s", txn.id, txn.type, new_status, admin_id)
    return txn
