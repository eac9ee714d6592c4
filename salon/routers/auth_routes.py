# salon/routers/auth_routes.py

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select

from salon.db import get_session
from salon.models import User
from salon.schemas import Token, UserPublic, UserRegister, UserRole
from salon.auth import verify_password, create_access_token, register_user

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    email = form_data.username.strip().lower()
    password = form_data.password

    user = session.exec(
        select(User).where(User.email == email)
    ).first()

    if user is None or not verify_password(password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_access_token({"sub": user.id, "role": user.role})
    return {"access_token": token, "token_type": "bearer"}


@router.post("/register", status_code=201, response_model=UserPublic)
def register(
    payload: UserRegister,
    session: Session = Depends(get_session),
):
    email = payload.email.strip().lower()

    # 1) Check if email already exists
    existing = session.exec(
        select(User).where(User.email == email)
    ).first()
    if existing is not None:
        raise HTTPException(status_code=409, detail="Email already registered")

    # 2) Create client + profile (self-registration never grants admin)
    user = register_user(
        session,
        email=email,
        password=payload.password,
        role=UserRole.client.value,
        name=payload.name.strip(),
        phone=payload.phone.strip(),
    )

    return {
        "id": user.id,
        "email": user.email,
        "role": user.role,
        "name": payload.name.strip(),
        "phone": payload.phone.strip(),
    }
