from typing import Optional
from datetime import datetime, timedelta, timezone
import pydantic
from pydantic import BaseModel
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlmodel.ext.asyncio.session import AsyncSession
import logging

from .authorization import Actor
from .config import get_settings
from .database import get_session
from .errors import AuthenticationError
from .models import User
from .repositories.users import SqlUserStore

logger = logging.getLogger(__name__)

_settings = get_settings()

SECRET_KEY = _settings.jwt_secret
if not SECRET_KEY:
    # Fail securely rather than signing tokens with a default secret
    raise ValueError("JWT_SECRET not found in environment or .env file.")

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = _settings.jwt_access_minutes

# pbkdf2_sha256 needs no bcrypt C-extension
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
# auto_error=False: missing credentials become our own 401 body, or None
# for routes that allow anonymous callers
security = HTTPBearer(auto_error=False)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class TokenPayload(BaseModel):
    sub: str
    type: Optional[str] = None
    exp: Optional[int] = None


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(subject, user_type: Optional[str] = None, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = {"sub": str(subject)}
    if user_type:
        to_encode["type"] = user_type
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": int(expire.timestamp())})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> TokenPayload:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return TokenPayload(**payload)
    except (JWTError, pydantic.ValidationError) as exc:
        raise AuthenticationError("Invalid authentication credentials") from exc


async def authenticate_user(login: str, password: str, session: AsyncSession) -> Optional[User]:
    user = await SqlUserStore(session).get_by_login(login)
    if not user or not user.password_hash:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


async def _load_actor(token: str, session: AsyncSession) -> Actor:
    payload = decode_access_token(token)
    try:
        user_id = int(payload.sub)
    except ValueError:
        raise AuthenticationError("Invalid authentication credentials") from None

    store = SqlUserStore(session)
    user = await store.get(user_id)
    if user is None:
        logger.info("Token subject %s does not match any user", payload.sub)
        raise AuthenticationError("Invalid authentication credentials")
    return Actor.from_user(user, await store.roles_of(user.id))


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> Actor:
    if not credentials or not credentials.credentials:
        raise AuthenticationError("Not authenticated")
    return await _load_actor(credentials.credentials, session)


async def get_optional_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    session: AsyncSession = Depends(get_session),
) -> Optional[Actor]:
    """Like ``get_current_actor`` but ``None`` when no token is sent."""
    if not credentials or not credentials.credentials:
        return None
    return await _load_actor(credentials.credentials, session)
