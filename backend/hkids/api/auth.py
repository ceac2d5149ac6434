import logging
import re
from typing import Literal

from fastapi import APIRouter, Depends, Header
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import or_
from sqlmodel import Session, select

from hkids.api.deps import get_current_user
from hkids.auth import authenticate, hash_password, issue_token, verify_password
from hkids.database import get_session
from hkids.errors import Conflict, Forbidden, Unauthenticated
from hkids.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1)
    email: str
    password: str = Field(min_length=1)
    role: Literal["admin", "user"] | None = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        value = value.strip().lower()
        if not _EMAIL.match(value):
            raise ValueError("value is not a valid email address")
        return value


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    role: str


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


def _check_admin_grant(authorization: str | None, session: Session) -> None:
    """Admin accounts are open until the first admin exists, then need an admin token."""
    if not session.exec(select(User).where(User.role == "admin")).first():
        return
    caller = authenticate(authorization, session) if authorization else None
    if caller is None or caller.role != "admin":
        raise Forbidden("Only an admin can create admin accounts")


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    authorization: str | None = Header(default=None),
    session: Session = Depends(get_session),
):
    if body.role == "admin":
        _check_admin_grant(authorization, session)

    email = body.email
    existing = session.exec(
        select(User).where(or_(User.username == body.username, User.email == email))
    ).first()
    if existing:
        raise Conflict("User already exists")

    user = User(
        username=body.username,
        email=email,
        password_hash=hash_password(body.password),
        **({"role": body.role} if body.role else {}),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Registered user %s (%s)", user.username, user.role)
    return AuthResponse(
        token=issue_token(user.id),
        user=UserResponse.model_validate(user, from_attributes=True),
    )


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.email == body.email.lower())).first()
    if not user or not verify_password(body.password, user.password_hash):
        raise Unauthenticated("Invalid credentials")
    return AuthResponse(
        token=issue_token(user.id),
        user=UserResponse.model_validate(user, from_attributes=True),
    )


@router.get("/profile", response_model=UserResponse)
async def profile(user: User = Depends(get_current_user)):
    return user
