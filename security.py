import logging
from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status

# These are for password hashing and JWT token management
from passlib.context import CryptContext
from jose import JWTError, jwt

from config import Settings, get_settings
from database import USERS, RecordStore, get_store

logger = logging.getLogger("taskmanager.auth")

# Password hashing using bcrypt, cost factor 10
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)


class InvalidTokenError(Exception):
    """Raised when a token has a bad signature, has expired, or carries no email."""


# Helper function to hash a password
def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# Helper function to verify a plain-text password against a hashed password
def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # Not a hash this context recognizes
        return False


# Helper function to create a signed identity token
def create_access_token(data: dict, settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"iat": issued_at, "exp": issued_at + expires_delta})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: Settings) -> str:
    """Check signature and expiry and return the email the token was issued for."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e
    email = payload.get("email")
    if not email:
        raise InvalidTokenError("Token carries no email claim")
    return email


# Dependency function to get the current authenticated user's email from the token
def get_current_user(
    settings: Annotated[Settings, Depends(get_settings)],
    store: Annotated[RecordStore, Depends(get_store)],
    authorization: Annotated[Optional[str], Header()] = None,
) -> str:
    # Expects "Authorization: Bearer <token>". An empty token still counts as
    # presented and fails verification below.
    scheme, _, token = (authorization or "").partition(" ")
    if scheme != "Bearer":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No token provided")

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        email = decode_access_token(token.strip(), settings)
    except InvalidTokenError as e:
        logger.warning(f"Rejected token: {e}")
        raise credentials_exception

    # A token stays cryptographically valid after its account is deleted,
    # so the owner has to still exist.
    if not any(user.get("email") == email for user in store.load(USERS)):
        logger.warning(f"Rejected token for unknown user: {email}")
        raise credentials_exception
    return email
