import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Sequence

from fastapi import Depends, Request, Response
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from config import Settings
from deps import get_settings
from errors import AuthenticationError, ForbiddenError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)

TOKEN_TYPE = "access"

_BEARER = re.compile(r"^Bearer\s+(.+)$", re.IGNORECASE)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # not a bcrypt hash at all
        return False


def create_access_token(user: Dict[str, Any], settings: Settings, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.token_expire_minutes))
    claims = {
        "sub": str(user.get("_id") or user.get("id")),
        "email": user.get("email"),
        "role": user.get("role", "user"),
        "typ": TOKEN_TYPE,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> Dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except JWTError:
        raise AuthenticationError("Invalid token")
    if payload.get("typ") != TOKEN_TYPE or not payload.get("sub"):
        raise AuthenticationError("Invalid token")
    return payload


def set_auth_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        settings.cookie_name,
        token,
        max_age=settings.token_max_age,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite=settings.cookie_samesite,
    )


def clear_auth_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        settings.cookie_name,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite=settings.cookie_samesite,
    )


# Token extractors, tried in order; the first one that yields a token wins.

def _from_bearer_header(request: Request, settings: Settings) -> Optional[str]:
    match = _BEARER.match(request.headers.get("authorization", ""))
    return match.group(1).strip() if match else None


def _from_cookie(request: Request, settings: Settings) -> Optional[str]:
    return request.cookies.get(settings.cookie_name)


def _from_access_token_header(request: Request, settings: Settings) -> Optional[str]:
    return request.headers.get("x-access-token")


def _from_query(request: Request, settings: Settings) -> Optional[str]:
    return request.query_params.get("access_token")


TOKEN_EXTRACTORS: Sequence[Callable[[Request, Settings], Optional[str]]] = (
    _from_bearer_header,
    _from_cookie,
    _from_access_token_header,
    _from_query,
)


def extract_token(request: Request, settings: Settings) -> Optional[str]:
    for extractor in TOKEN_EXTRACTORS:
        token = extractor(request, settings)
        if token:
            return token
    return None


class CurrentUser(BaseModel):
    id: str
    email: Optional[str] = None
    role: Optional[str] = None


def require_user(*roles: str):
    """Dependency factory: any authenticated user, or one holding one of `roles`."""
    wanted = {r.lower() for r in roles}

    def dependency(request: Request, settings: Settings = Depends(get_settings)) -> CurrentUser:
        token = extract_token(request, settings)
        if not token:
            raise AuthenticationError("Token required")
        payload = decode_token(token, settings)
        user = CurrentUser(id=payload["sub"], email=payload.get("email"), role=payload.get("role"))
        if wanted and (user.role or "").lower() not in wanted:
            raise ForbiddenError("Insufficient role")
        return user

    return dependency
