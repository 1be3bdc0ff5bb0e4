import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from core.auth import create_token, get_current_user, hash_password, verify_password
from core.config import settings
from core.database import get_db
from core.errors import ErrorCode, ErrorMessage
from core.exceptions import Unauthorized, ValidationError
from core.models import User
from core.rate_limit import limiter
from users.schemas import AuthResponse, LoginSchema, RegisterSchema, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "isAdmin": bool(user.is_admin),
    }


@router.post("/register", response_model=AuthResponse, status_code=201)
@limiter.limit(settings.AUTH_RATE_LIMIT)
def register(request: Request, req: RegisterSchema, db: Session = Depends(get_db)):
    if db.query(User).filter(User.username == req.username).first():
        raise ValidationError(ErrorMessage.USERNAME_TAKEN, code=ErrorCode.USERNAME_TAKEN)

    new_user = User(
        username=req.username,
        email=req.email,
        password=hash_password(req.password),
        is_admin=False,
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    logger.info("Registered user %s", new_user.id)
    token = create_token({"id": new_user.id, "username": new_user.username})
    return {"success": True, "data": {"user": user_to_dict(new_user), "token": token}}


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.AUTH_RATE_LIMIT)
def login(request: Request, req: LoginSchema, db: Session = Depends(get_db)):

    user = db.query(User).filter(User.username == req.username).first()
    if not user or not verify_password(req.password, user.password):
        raise Unauthorized(ErrorMessage.INVALID_CREDENTIALS, code=ErrorCode.AUTH_INVALID_CREDENTIALS)

    token = create_token({"id": user.id, "username": user.username})
    return {"success": True, "data": {"user": user_to_dict(user), "token": token}}


@router.get("/user", response_model=UserResponse)
def current_user(user: User = Depends(get_current_user)):
    return {"success": True, "data": user_to_dict(user)}
