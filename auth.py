"""
Authentication and access checks for the content API.

Callers are `public` (no token), `authenticated` (JWT issued by the login
routes) or full access (the configured API_TOKEN). Every route names the
action it performs; the action must be granted to the caller's role in the
`permission` collection (see permissions.py).
"""

import hmac
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

import config
import database
from permissions import AUTHENTICATED, PUBLIC, has_permission

FULL_ACCESS = "full-access"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(plain_password, password_hash)
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.JWT_ALG)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


def public_user(user: dict) -> dict:
    data = database.serialize(user)
    data.pop("password_hash", None)
    return data


async def get_caller(token: Optional[str] = Depends(oauth2_scheme)) -> dict:
    if not token:
        return {"role": PUBLIC, "user": None}
    if config.API_TOKEN and hmac.compare_digest(token, config.API_TOKEN):
        return {"role": FULL_ACCESS, "user": None}

    credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
    try:
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALG])
        email = payload.get("sub")
        if email is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception
    user = database.get_document("user", {"email": email})
    if not user or not user.get("is_active", True):
        raise credentials_exception
    return {"role": user.get("role", AUTHENTICATED), "user": public_user(user)}


async def require_user(caller: dict = Depends(get_caller)) -> dict:
    if caller["user"] is None:
        raise HTTPException(status_code=401, detail="Missing or invalid credentials")
    return caller


def require_permission(action: str):
    async def permission_checker(caller: dict = Depends(get_caller)):
        if caller["role"] == FULL_ACCESS:
            return caller
        if not has_permission(caller["role"], action):
            raise HTTPException(status_code=403, detail="Forbidden")
        return caller
    return permission_checker
