import logging

from sqlalchemy.orm import Session

from core.auth import hash_password
from core.errors import ErrorCode, ErrorMessage
from core.exceptions import NotFoundError, ValidationError
from core.models import User

logger = logging.getLogger(__name__)

# request field -> column
COLUMNS = {
    "username": "username",
    "email": "email",
    "isAdmin": "is_admin",
}


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.id.asc()).all()


def get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(ErrorCode.USER_NOT_FOUND, ErrorMessage.USER_NOT_FOUND, {"userId": user_id})
    return user


def update_user(db: Session, user_id: int, updates: dict) -> User:
    """
    Apply an admin edit to a user account.

    ``updates`` holds only the fields the admin sent. A new password is
    hashed before it is stored; passwords never leave this function.
    """
    user = get_user(db, user_id)

    username = updates.get("username")
    if username is not None and username != user.username:
        taken = db.query(User).filter(User.username == username, User.id != user_id).first()
        if taken:
            raise ValidationError(ErrorMessage.USERNAME_TAKEN, {"username": username}, code=ErrorCode.USERNAME_TAKEN)

    for key, column in COLUMNS.items():
        if key in updates and (updates[key] is not None or column == "email"):
            setattr(user, column, updates[key])

    if updates.get("password"):
        user.password = hash_password(updates["password"])

    db.commit()
    db.refresh(user)

    logger.info("User %s updated by admin (fields: %s)", user.id, ", ".join(sorted(updates)) or "none")
    return user
