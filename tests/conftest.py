"""
Shared fixtures: a fresh SQLite ledger per test, row factories and an
authenticated TestClient.
"""

import os

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["INIT_DB_ON_STARTUP"] = "false"
os.environ["JWT_SECRET"] = "test-secret"

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from core.auth import create_token
from core.database import Base, build_engine, get_db
from core.models import Coin, Holding, User


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(username=None, is_admin=False, password="not-a-real-hash"):
        counter["n"] += 1
        user = User(
            username=username or f"user{counter['n']}",
            password=password,
            is_admin=is_admin,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def make_coin(db):
    def _make(symbol="BTC", price="100", is_locked=False, is_active=True, is_default=False, name=None):
        coin = Coin(
            name=name or symbol.title(),
            symbol=symbol,
            price=Decimal(price),
            is_locked=is_locked,
            is_active=is_active,
            is_default=is_default,
        )
        db.add(coin)
        db.commit()
        db.refresh(coin)
        return coin

    return _make


@pytest.fixture
def give_holding(db):
    def _give(user, coin, amount, price):
        holding = Holding(
            user_id=user.id,
            coin_id=coin.id,
            amount=Decimal(amount),
            purchase_price=Decimal(price),
        )
        db.add(holding)
        db.commit()
        db.refresh(holding)
        return holding

    return _give


@pytest.fixture
def user(make_user):
    return make_user("alice")


@pytest.fixture
def admin(make_user):
    return make_user("root", is_admin=True)


@pytest.fixture
def btc(make_coin):
    return make_coin("BTC", "100")


@pytest.fixture
def auth_headers():
    def _headers(user) -> dict:
        token = create_token({"id": user.id, "username": user.username})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def client(session_factory):
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
