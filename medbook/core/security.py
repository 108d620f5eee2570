"""
Password hashing and the bearer tokens that identify a MedBook user.

Access and refresh tokens go through the same encoder and differ only in
lifetime and ``token_type``. ``sub`` carries the user id as a string; refresh
tokens also get a random ``jti`` so two issued in the same second never hash
to the same stored value.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional
import secrets

from fastapi import HTTPException, status
from fastapi.security import HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from .config import settings
from ..models.user import User

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

security = HTTPBearer()

class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int

class TokenPayload(BaseModel):
    sub: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    exp: Optional[int] = None
    token_type: Optional[str] = None

    @property
    def user_id(self) -> Optional[int]:
        if self.sub and self.sub.isascii() and self.sub.isdigit():
            return int(self.sub)
        return None

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def access_claims(user: User) -> Dict[str, Any]:
    """Identity claims embedded in every token issued for ``user``."""
    return {"sub": str(user.id), "email": user.email, "role": user.role.value}

def _encode(claims: Dict[str, Any], lifetime: timedelta, token_type: str) -> str:
    to_encode = dict(claims, exp=datetime.utcnow() + lifetime, token_type=token_type)
    if token_type == REFRESH_TOKEN:
        to_encode["jti"] = secrets.token_hex(8)
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def create_access_token(claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(claims, lifetime, ACCESS_TOKEN)

def create_refresh_token(claims: Dict[str, Any]) -> str:
    return _encode(claims, timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS), REFRESH_TOKEN)

def verify_token(token: str, expected_type: Optional[str] = None) -> Optional[TokenPayload]:
    """Decode ``token``; None if the signature, expiry or token type is wrong."""
    try:
        payload = TokenPayload(**jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]))
    except JWTError:
        return None

    if expected_type and payload.token_type != expected_type:
        return None
    return payload

def issue_tokens(user: User) -> Token:
    """A fresh access/refresh pair for ``user``."""
    claims = access_claims(user)
    return Token(
        access_token=create_access_token(claims),
        refresh_token=create_refresh_token(claims),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    )

class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )
