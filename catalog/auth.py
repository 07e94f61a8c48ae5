# catalog/auth.py
"""Stub authentication: a login that signs a token for any email, and the
bearer-token dependency guarding the write and reporting endpoints."""
from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from .config import JWT_ALGORITHM, JWT_EXPIRES_MINUTES, JWT_SECRET
from .utils import logger, utc_now

DEFAULT_LOGIN_EMAIL = "test@example.com"

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(email: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = utc_now() + (expires_delta or timedelta(minutes=JWT_EXPIRES_MINUTES))
    payload = {"sub": email, "email": email, "exp": expire}
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def login(email: Optional[str] = None) -> Dict[str, str]:
    # no password or user table: any caller gets a token
    email = email or DEFAULT_LOGIN_EMAIL
    token = create_access_token(email)
    logger.info("Login successful for %s", email)
    return {"access_token": token, "token_type": "bearer"}


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Dict[str, Any]:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise unauthorized
    try:
        payload = jwt.decode(credentials.credentials, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError:
        logger.warning("Rejected bearer token")
        raise unauthorized
    return {"sub": payload.get("sub"), "email": payload.get("email")}
