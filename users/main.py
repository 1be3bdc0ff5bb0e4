from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.auth import get_current_admin
from core.database import get_db
from core.models import User
from users import users
from users.auth import user_to_dict
from users.schemas import UpdateUserSchema, UserListResponse, UserResponse

router = APIRouter(prefix="/api/admin/users", tags=["Admin"])


@router.get("", response_model=UserListResponse)
def get_users(
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return {"success": True, "data": [user_to_dict(u) for u in users.list_users(db)]}


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    return {"success": True, "data": user_to_dict(users.get_user(db, user_id))}


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    payload: UpdateUserSchema,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin),
):
    user = users.update_user(db, user_id, payload.model_dump(exclude_unset=True))
    return {"success": True, "data": user_to_dict(user)}
