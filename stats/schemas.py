from pydantic import BaseModel
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from transactions.schemas import TransactionData


class UserMini(BaseModel):
    id: int
    username: str
    email: Optional[str] = None


class CoinMini(BaseModel):
    id: int
    name: str
    symbol: str


class TransactionListItem(BaseModel):
    transaction: TransactionData
    user: UserMini
    coin: CoinMini


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    totalPages: int


class TransactionList(BaseModel):
    transactions: List[TransactionListItem]
    pagination: Pagination


class TransactionListResponse(BaseModel):
    success: bool = True
    data: TransactionList


class RecentTransaction(BaseModel):
    id: int
    type: str
    amount: Decimal
    totalValue: Decimal
    status: str
    createdAt: Optional[datetime] = None
    coinSymbol: str
    username: str


class DashboardStats(BaseModel):
    totalUsers: int
    activeCoins: int
    totalTransactions: int
    totalVolume: Decimal
    pendingTransactions: int
    recentTransactions: List[RecentTransaction]


class DashboardResponse(BaseModel):
    success: bool = True
    data: DashboardStats


class PendingSummary(BaseModel):
    totalPending: int
    totalValue: Decimal


class PendingActivities(BaseModel):
    pendingTransactions: List[TransactionListItem]
    summary: PendingSummary


class PendingActivitiesResponse(BaseModel):
    success: bool = True
    data: PendingActivities
