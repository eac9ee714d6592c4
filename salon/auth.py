# salon/auth.py

import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext

from sqlmodel import Session, select
from salon.config import settings
from salon.db import get_session
from salon.models import Profile, User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def create_access_token(data: dict, expires_minutes: int = None) -> str:
    to_encode = data.copy()
    minutes = expires_minutes or settings.access_token_expire_minutes
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> dict:
    """Identity of the caller for this request only: {id, email, role}."""
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        user_id = payload.get("sub")
    except JWTError:
        raise _unauthorized("Invalid token")
    if user_id is None:
        raise _unauthorized("Invalid token")

    user = session.get(User, user_id)
    if user is None:
        raise _unauthorized("User not found")

    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
    }


def register_user(session: Session, email: str, password: str, role: str, name: str, phone: str = "") -> User:
    """Create a user and its profile. Caller checks the email is free."""
    user = User(email=email, password_hash=hash_password(password), role=role)
    session.add(user)
    session.flush()  # fills user.id for the profile
    session.add(Profile(user_id=user.id, name=name, phone=phone))
    session.commit()
    session.refresh(user)
    return user


def ensure_admin(session: Session) -> None:
    """Seed the admin account from ADMIN_EMAIL / ADMIN_PASSWORD if missing."""
    if not settings.admin_email or not settings.admin_password:
        return

    # stored the way login looks it up
    email = settings.admin_email.strip().lower()
    existing = session.exec(select(User).where(User.email == email)).first()
    if existing is not None:
        return

    register_user(session, email, settings.admin_password, "admin", "Administrator")
    logger.info("auth.admin_seeded", extra={"email": email})
