# app/services/auth.py
#
# Accounts
# Registration and password checks (bcrypt), and the signed-in user view
# that templates and routes consume.

import logging
from dataclasses import dataclass
from typing import Optional

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import User
from app.schemas import RegisterInput
from app.services.preferences_store import ensure_preferences, get_preferences

logger = logging.getLogger(__name__)


class EmailTakenError(Exception):
    pass


@dataclass
class CurrentUser:
    uid: int
    email: str
    display_name: Optional[str]
    photo_url: Optional[str]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def register_user(db: Session, data: RegisterInput) -> User:
    email = data.email.lower()
    if db.query(User).filter(User.email == email).first() is not None:
        raise EmailTakenError(email)

    user = User(email=email, display_name=data.display_name.strip(), password_hash=hash_password(data.password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise EmailTakenError(email) from e
    db.refresh(user)

    ensure_preferences(db, user.id)
    logger.info("[auth] registered user=%s", user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> Optional[User]:
    user = db.query(User).filter(User.email == email.lower()).first()
    if user and check_password(password, user.password_hash):
        ensure_preferences(db, user.id)
        return user
    logger.info("[auth] failed login for %s", email)
    return None


def to_current_user(db: Session, user: User) -> CurrentUser:
    prefs = get_preferences(db, user.id)
    return CurrentUser(uid=user.id, email=user.email, display_name=user.display_name, photo_url=prefs.avatar)
