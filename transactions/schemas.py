from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from transactions.bulk import BulkVerifyResult


class BuyRequest(BaseModel):
    coinId: int
    amount: Decimal
    transactionHash: str = ""
    senderAddress: str = ""
    paymentMethod: str = ""


class WithdrawRequest(BaseModel):
    coinId: int
    amount: Decimal
    withdrawalAddress: str = ""


class VerifyRequest(BaseModel):
    status: str
    adminNotes: Optional[str] = None


class BulkActionRequest(BaseModel):
    transactionIds: List[int] = Field(default_factory=list)
    action: str
    adminNotes: Optional[str] = None


class TransactionData(BaseModel):
    id: int
    reference: str
    userId: int
    coinId: int
    type: str
    amount: Decimal
    price: Decimal
    totalValue: Decimal
    paymentMethod: str
    status: str
    metadata: dict
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class TransactionResponse(BaseModel):
    success: bool = True
    message: str
    data: TransactionData


class BulkActionResponse(BaseModel):
    success: bool = True
    message: str
    data: BulkVerifyResult


class HoldingCoin(BaseModel):
    id: int
    name: str
    symbol: str
    price: Decimal
    isLocked: bool


class HoldingData(BaseModel):
    id: int
    coinId: int
    amount: Decimal
    purchasePrice: Decimal
    purchaseDate: Optional[datetime] = None
    coin: HoldingCoin


class PortfolioResponse(BaseModel):
    success: bool = True
    data: List[HoldingData]
