from datetime import UTC, datetime, timedelta

import bcrypt
from jose import JWTError, jwt
from sqlmodel import Session

from hkids.config import settings
from hkids.errors import Forbidden, Unauthenticated, UserNotFound
from hkids.models.user import User


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode(), hashed.encode())


def issue_token(user_id: int) -> str:
    expire = datetime.now(UTC) + timedelta(days=settings.token_expire_days)
    return jwt.encode(
        {"sub": str(user_id), "exp": expire},
        settings.secret_key,
        algorithm="HS256",
    )


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.secret_key, algorithms=["HS256"])


def authenticate(authorization: str | None, session: Session) -> User:
    """Resolve an ``Authorization: Bearer <token>`` header to a stored user."""
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthenticated("No token provided")
    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = decode_token(token)
        user_id = int(payload["sub"])
    except (JWTError, KeyError, ValueError):
        raise Unauthenticated("Invalid token")
    user = session.get(User, user_id)
    if not user:
        raise UserNotFound("User not found")
    return user


def require_admin(user: User) -> None:
    if user.role != "admin":
        raise Forbidden("Access denied. Admin privileges required.")
