from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from coins import directory
from coins.schemas import (
    AddCoinSchema,
    CoinListResponse,
    CoinResponse,
    ToggleActiveSchema,
    ToggleLockSchema,
    UpdateCoinSchema,
)
from core.auth import get_current_admin
from core.database import get_db
from core.models import Coin, User

router = APIRouter(prefix="/api/coins", tags=["Coins"])

# request field -> column
COLUMNS = {
    "name": "name",
    "symbol": "symbol",
    "price": "price",
    "logoUrl": "logo_url",
    "description": "description",
    "marketCap": "market_cap",
    "change24h": "change_24h",
    "isActive": "is_active",
    "isDefault": "is_default",
}


def coin_to_dict(coin: Coin) -> dict:
    return {
        "id": coin.id,
        "name": coin.name,
        "symbol": coin.symbol,
        "price": coin.price,
        "logoUrl": coin.logo_url,
        "description": coin.description,
        "marketCap": coin.market_cap,
        "change24h": coin.change_24h,
        "isActive": coin.is_active,
        "isDefault": coin.is_default,
        "isLocked": coin.is_locked,
    }


NULLABLE = {"logo_url", "description", "market_cap", "change_24h"}


def _columns(data: dict) -> dict:
    fields = {
        COLUMNS[key]: value
        for key, value in data.items()
        if key in COLUMNS and (value is not None or COLUMNS[key] in NULLABLE)
    }
    if fields.get("logo_url") is not None:
        fields["logo_url"] = str(fields["logo_url"])
    return fields


@router.get("", response_model=CoinListResponse)
def get_coins(
    active: bool = Query(False),
    db: Session = Depends(get_db),
):
    coins = directory.list_coins(db, active_only=active)
    return {"success": True, "data": [coin_to_dict(c) for c in coins]}


@router.get("/{coin_id}", response_model=CoinResponse)
def get_coin(coin_id: int, db: Session = Depends(get_db)):
    return {"success": True, "data": coin_to_dict(directory.get_coin(db, coin_id))}


@router.post("", response_model=CoinResponse, status_code=201)
def add_coin(
    payload: AddCoinSchema,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    coin = directory.create_coin(db, **_columns(payload.model_dump()))
    return {"success": True, "data": coin_to_dict(coin)}


@router.patch("/{coin_id}", response_model=CoinResponse)
def update_coin(
    coin_id: int,
    payload: UpdateCoinSchema,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    coin = directory.update_coin(db, coin_id, **_columns(payload.model_dump(exclude_unset=True)))
    return {"success": True, "data": coin_to_dict(coin)}


@router.patch("/{coin_id}/toggle", response_model=CoinResponse)
def toggle_coin(
    coin_id: int,
    payload: ToggleActiveSchema,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    coin = directory.update_coin(db, coin_id, is_active=payload.isActive)
    return {"success": True, "data": coin_to_dict(coin)}


@router.patch("/{coin_id}/toggle-lock", response_model=CoinResponse)
def toggle_coin_lock(
    coin_id: int,
    payload: ToggleLockSchema,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    coin = directory.update_coin(db, coin_id, is_locked=payload.isLocked)
    return {"success": True, "data": coin_to_dict(coin)}


@router.delete("/{coin_id}", status_code=204)
def delete_coin(
    coin_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    directory.delete_coin(db, coin_id)
    return Response(status_code=204)
