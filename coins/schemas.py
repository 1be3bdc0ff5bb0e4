from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, HttpUrl

# column limits: Numeric(18, 8) price, Numeric(18, 2) market cap, Numeric(10, 2) change
MAX_PRICE = Decimal(10) ** 10
MAX_MARKET_CAP = Decimal(10) ** 16
MAX_CHANGE = Decimal(10) ** 8


class AddCoinSchema(BaseModel):
    name: str = Field(min_length=1)
    symbol: str = Field(min_length=1, max_length=10)
    price: Decimal = Field(gt=0, lt=MAX_PRICE, decimal_places=8)
    logoUrl: Optional[HttpUrl] = None
    description: Optional[str] = None
    marketCap: Optional[Decimal] = Field(default=None, gt=0, lt=MAX_MARKET_CAP, decimal_places=2)
    change24h: Optional[Decimal] = Field(default=None, gt=-MAX_CHANGE, lt=MAX_CHANGE, decimal_places=2)
    isActive: bool = True
    isDefault: bool = False


class UpdateCoinSchema(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    symbol: Optional[str] = Field(default=None, min_length=1, max_length=10)
    price: Optional[Decimal] = Field(default=None, gt=0, lt=MAX_PRICE, decimal_places=8)
    logoUrl: Optional[HttpUrl] = None
    description: Optional[str] = None
    marketCap: Optional[Decimal] = Field(default=None, gt=0, lt=MAX_MARKET_CAP, decimal_places=2)
    change24h: Optional[Decimal] = Field(default=None, gt=-MAX_CHANGE, lt=MAX_CHANGE, decimal_places=2)
    isActive: Optional[bool] = None
    isDefault: Optional[bool] = None


class ToggleActiveSchema(BaseModel):
    isActive: bool


class ToggleLockSchema(BaseModel):
    isLocked: bool


class CoinData(BaseModel):
    id: int
    name: str
    symbol: str
    price: Decimal
    logoUrl: Optional[str] = None
    description: Optional[str] = None
    marketCap: Optional[Decimal] = None
    change24h: Optional[Decimal] = Field(default=None, gt=-MAX_CHANGE, lt=MAX_CHANGE, decimal_places=2)
    isActive: bool
    isDefault: bool
    isLocked: bool


class CoinResponse(BaseModel):
    success: bool = True
    data: CoinData


class CoinListResponse(BaseModel):
    success: bool = True
    data: List[CoinData]
