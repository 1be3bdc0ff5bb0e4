"""
Typed transaction metadata.

Every transaction carries a ``TransactionMetadata`` document in its
``metadata`` column. The submission proof is written once; each review adds a
``VerificationAudit`` entry to ``verifications``. Entries are only ever
appended, so the column doubles as the audit trail of the transaction.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Decision = Literal["approve", "reject"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerificationAudit(BaseModel):
    model_config = ConfigDict(frozen=True)

    decision: Decision
    status: str
    verifiedAt: datetime = Field(default_factory=utcnow)
    adminNote: str
    adminId: Optional[int] = None
    bulk: bool = False


class TransactionMetadata(BaseModel):
    # rows written before the typed layout may carry extra keys
    model_config = ConfigDict(extra="allow")

    transactionHash: Optional[str] = None
    senderAddress: Optional[str] = None
    withdrawalAddress: Optional[str] = None
    notes: Optional[str] = None
    submittedAt: datetime = Field(default_factory=utcnow)
    holdingPriceAtDebit: Optional[Decimal] = None
    verifications: List[VerificationAudit] = Field(default_factory=list)

    @classmethod
    def load(cls, raw: dict | None) -> "TransactionMetadata":
        return cls.model_validate(raw or {})

    def with_verification(self, entry: VerificationAudit) -> "TransactionMetadata":
        return self.model_copy(update={"verifications": [*self.verifications, entry]})

    def dump(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)

    @property
    def last_verification(self) -> Optional[VerificationAudit]:
        return self.verifications[-1] if self.verifications else None
