from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    ForeignKey,
    Text,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from core.database import Base
from core.types import ExactNumeric


# every quantity, price and total in the ledger: at most 10 integer digits,
# and anything finer than 8 places is rounded half-even on write
LedgerNumeric = ExactNumeric(18, 8)


class TransactionStatus:
    PENDING_VERIFICATION = "pending_verification"
    COMPLETED = "completed"
    REJECTED = "rejected"


class TransactionType:
    BUY = "buy"
    SELL = "sell"


class PaymentMethod:
    USDT = "USDT"
    SOL = "SOL"
    CRYPTO_WITHDRAWAL = "crypto_withdrawal"

    ACCEPTED_FOR_BUY = (USDT, SOL)


# USER

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, nullable=True)
    password = Column(String, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    holdings = relationship("Holding", back_populates="user")
    transactions = relationship("Transaction", back_populates="user")


# COIN

class Coin(Base):
    __tablename__ = "coins"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String, nullable=False)
    symbol = Column(String, unique=True, index=True, nullable=False)
    price = Column(LedgerNumeric, nullable=False)

    logo_url = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    market_cap = Column(ExactNumeric(18, 2), nullable=True)
    change_24h = Column(ExactNumeric(10, 2), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    is_locked = Column(Boolean, default=False, nullable=False)


# HOLDING

class Holding(Base):
    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint("user_id", "coin_id", name="uq_holdings_user_coin"),
    )

    id = Column(Integer, primary_key=True, index=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    coin_id = Column(Integer, ForeignKey("coins.id"), nullable=False)

    amount = Column(LedgerNumeric, nullable=False)
    purchase_price = Column(LedgerNumeric, nullable=False)  # weighted average

    purchase_date = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="holdings")
    coin = relationship("Coin")


# TRANSACTIONS

class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    reference = Column(String(36), unique=True, nullable=False)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    coin_id = Column(Integer, ForeignKey("coins.id"), nullable=False)

    type = Column(String, nullable=False)  # buy | sell
    amount = Column(LedgerNumeric, nullable=False)
    price = Column(LedgerNumeric, nullable=False)
    total_value = Column(LedgerNumeric, nullable=False)
    payment_method = Column(String, nullable=False)

    status = Column(String, default=TransactionStatus.PENDING_VERIFICATION, nullable=False, index=True)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="transactions")
    coin = relationship("Coin")
