import logging
from typing import Iterable, List, Literal, Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from core.errors import ErrorMessage
from core.exceptions import AlreadyFinalizedError, AppException, NotFoundError, ValidationError
from ledger.audit import Decision
from transactions.lifecycle import DECISIONS, verify

logger = logging.getLogger(__name__)

Outcome = Literal["processed", "skipped", "failed"]


class BulkItemResult(BaseModel):
    transactionId: int
    outcome: Outcome
    status: Optional[str] = None
    code: Optional[str] = None
    reason: Optional[str] = None


class BulkVerifyResult(BaseModel):
    requestedCount: int
    processedCount: int
    decision: Decision
    results: List[BulkItemResult]

    @property
    def processed_ids(self) -> list[int]:
        return [r.transactionId for r in self.results if r.outcome == "processed"]


def _unique(ids: Iterable[int]) -> list[int]:
    seen = set()
    ordered = []
    for transaction_id in ids:
        if transaction_id not in seen:
            seen.add(transaction_id)
            ordered.append(transaction_id)
    return ordered


def bulk_verify(
    db: Session,
    transaction_ids: Iterable[int],
    decision: Decision,
    note: Optional[str] = None,
    admin_id: Optional[int] = None,
) -> BulkVerifyResult:
    """
    Approve or reject many pending transactions in one admin action.

    Each id is verified in its own database transaction. Ids that do not
    exist or are no longer pending are skipped, and a failing id never
    undoes the ones already processed.
    """
    if decision not in DECISIONS:
        raise ValidationError("Decision must be either 'approve' or 'reject'", {"decision": decision})

    ids = _unique(transaction_ids)
    if not ids:
        raise ValidationError(ErrorMessage.EMPTY_BULK_SELECTION)

    note = note or f"Bulk {'approved' if decision == 'approve' else 'rejected'} by admin"
    results: list[BulkItemResult] = []

    for transaction_id in ids:
        try:
            txn = verify(db, transaction_id, decision, note, admin_id=admin_id, bulk=True)
        except (NotFoundError, AlreadyFinalizedError) as e:
            results.append(BulkItemResult(
                transactionId=transaction_id,
                outcome="skipped",
                code=e.code,
                reason=e.message,
            ))
        except AppException as e:
            logger.warning("Bulk %s of transaction %s failed: %s", decision, transaction_id, e.message)
            results.append(BulkItemResult(
                transactionId=transaction_id,
                outcome="failed",
                code=e.code,
                reason=e.message,
            ))
        else:
            results.append(BulkItemResult(transactionId=transaction_id, outcome="processed", status=txn.status))

    processed = sum(1 for r in results if r.outcome == "processed")
    logger.info("Bulk %s by admin %s: %s of %s processed", decision, admin_id, processed, len(ids))

    return BulkVerifyResult(
        requestedCount=len(ids),
        processedCount=processed,
        decision=decision,
        results=results,
    )
