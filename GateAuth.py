from datetime import datetime, timedelta, timezone
from typing import Annotated, Dict, Optional
import asyncio
import logging

import bcrypt
import jwt
from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt.exceptions import InvalidTokenError
from pydantic import BaseModel

import secretmanager
import settings
from domain.gate import GateAction, GateLock, PasswordVerifier, gate_storage_key
from domain.storage import SessionStorage

ALGORITHM = "HS256"
GATE_TOKEN_SUBJECT = "gate:auth"

logger = logging.getLogger('uvicorn.error')

# /gate/auth takes a JSON body, not the OAuth2 password form; its token is sent as a plain bearer token.
bearer_scheme = HTTPBearer(auto_error=False, description="Token returned by POST /gate/auth")

DISABLED_MESSAGES = {
    GateAction.AUTH: "تم تعطيل الوصول بشكل دائم بسبب تجاوز عدد المحاولات المسموح به.",
    GateAction.DELETE: "تم تعطيل صلاحية الحذف بشكل دائم بسبب تجاوز عدد المحاولات المسموح به.",
}
PASSWORD_REQUIRED = "كلمة المرور مطلوبة"


class Token(BaseModel):
    access_token: str
    token_type: str


class GatePassword(BaseModel):
    password: str


class PasswordNotConfigured(Exception):
    pass


def get_secret_key():
    return settings.GATE_TOKEN_KEY or secretmanager.get_secret(settings.GATE_TOKEN_SECRET)


def verify_password(plain_password, hashed_password):
    return bcrypt.checkpw(
        bytes(plain_password, encoding="utf-8"),
        bytes(hashed_password, encoding="utf-8"),
    )


def get_password_hash(password):
    return bcrypt.hashpw(
        bytes(password, encoding="utf-8"),
        bcrypt.gensalt(),
    )


class SecretManagerPasswordVerifier:
    """Checks gate passwords against bcrypt hashes stored in Secret Manager."""

    def __init__(self, secret_ids: Optional[Dict[GateAction, str]] = None):
        self.secret_ids = secret_ids or {
            GateAction.AUTH: settings.AUTH_PASSWORD_HASH_SECRET,
            GateAction.DELETE: settings.DELETE_PASSWORD_HASH_SECRET,
        }

    async def verify(self, password: str, action: GateAction) -> bool:
        hashed_password = await asyncio.to_thread(secretmanager.get_optional_secret, self.secret_ids[action])
        if not hashed_password:
            raise PasswordNotConfigured(action.value)
        return verify_password(password, hashed_password.strip())


def create_gate_token(expires_delta: timedelta | None = None):
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.GATE_TOKEN_EXPIRE_MINUTES)
    to_encode = {"sub": GATE_TOKEN_SUBJECT, "exp": expire}
    return jwt.encode(to_encode, get_secret_key(), algorithm=ALGORITHM)


async def require_gate_token(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)],
):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="يجب إدخال كلمة المرور أولاً",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception
    try:
        payload = jwt.decode(credentials.credentials, get_secret_key(), algorithms=[ALGORITHM])
    except InvalidTokenError:
        raise credentials_exception
    if payload.get("sub") != GATE_TOKEN_SUBJECT:
        raise credentials_exception
    return payload


async def get_password_verifier(request: Request) -> PasswordVerifier:
    if not hasattr(request.app.state, 'password_verifier') or not request.app.state.password_verifier:
        logger.error("Password verifier not initialized or unavailable.")
        raise HTTPException(status_code=503, detail="خدمة التحقق من كلمة المرور غير متاحة")
    return request.app.state.password_verifier


def build_gate_lock(
    request: Request, action: GateAction, verifier: Optional[PasswordVerifier] = None
) -> GateLock:
    return GateLock(
        action,
        verifier,
        SessionStorage(request.session, gate_storage_key(action)),
        max_attempts=settings.GATE_MAX_ATTEMPTS,
    )


async def get_auth_lock(
    request: Request, verifier: Annotated[PasswordVerifier, Depends(get_password_verifier)]
) -> GateLock:
    return build_gate_lock(request, GateAction.AUTH, verifier)


async def get_delete_lock(
    request: Request, verifier: Annotated[PasswordVerifier, Depends(get_password_verifier)]
) -> GateLock:
    return build_gate_lock(request, GateAction.DELETE, verifier)


async def pass_gate(lock: GateLock, password: Optional[str]) -> None:
    """Raise the matching HTTPException unless `password` opens `lock`."""
    if lock.is_disabled:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=DISABLED_MESSAGES[lock.action])
    if not password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=PASSWORD_REQUIRED)
    if await lock.authenticate(password):
        return
    if lock.is_disabled:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=DISABLED_MESSAGES[lock.action])
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=f"كلمة المرور غير صحيحة. {lock.remaining_attempts} محاولات متبقية",
    )


async def require_delete_password(
    lock: Annotated[GateLock, Depends(get_delete_lock)],
    x_delete_password: Annotated[Optional[str], Header()] = None,
):
    await pass_gate(lock, x_delete_password)
