from datetime import timedelta
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from loguru import logger
from passlib.context import CryptContext
from pymongo.database import Database

from config import Settings, app_settings
from database import USERS, get_db, now_utc, parse_object_id
from errors import ApiError
from schemas import CurrentUser

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
security = HTTPBearer(auto_error=False, description="JWT issued by /api/auth/login")


# ---------------------- Utils ----------------------

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def create_access_token(user_id: str, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    expire = now_utc() + (expires_delta or settings.jwt_expiration)
    return jwt.encode({"id": user_id, "exp": expire}, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_access_token(token: str, settings: Settings) -> str:
    """Return the user id carried by ``token``; raises ``JWTError`` when invalid."""
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
    user_id = payload.get("id")
    if not isinstance(user_id, str):
        raise JWTError("Token has no user id")
    return user_id


def current_user_from_doc(user_doc: dict) -> CurrentUser:
    return CurrentUser(
        id=str(user_doc["_id"]),
        name=user_doc.get("name", ""),
        email=user_doc.get("email", ""),
        role=user_doc.get("role", "user"),
        is_email_verified=user_doc.get("is_email_verified", False),
    )


# ---------------------- Dependencies ----------------------

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(app_settings),
    db: Database = Depends(get_db),
) -> CurrentUser:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise ApiError.unauthorized("Not authorized, no token")
    try:
        user_id = decode_access_token(credentials.credentials, settings)
    except JWTError as exc:
        logger.debug("Rejected bearer token: {}", exc)
        raise ApiError.unauthorized("Not authorized, invalid token") from exc

    oid = parse_object_id(user_id)
    user = db[USERS].find_one({"_id": oid}, {"password_hash": 0}) if oid else None
    if not user:
        raise ApiError.unauthorized("Not authorized, user not found")
    return current_user_from_doc(user)


def require_roles(*roles: str) -> Callable[..., CurrentUser]:
    allowed = set(roles)

    def dep(user: Optional[CurrentUser] = Depends(get_current_user)) -> CurrentUser:
        if user is None:
            raise ApiError.unauthorized("Not authorized, no user")
        if user.role not in allowed:
            raise ApiError.forbidden(f"User role {user.role} is not authorized to access this route")
        return user

    return dep
