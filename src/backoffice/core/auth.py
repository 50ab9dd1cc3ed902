"""Authentication module for JWT handling."""

from datetime import UTC, datetime, timedelta
from typing import Any, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from backoffice.core.dependencies import get_app_settings

security = HTTPBearer(auto_error=False)

SESSION_COOKIE = "access_token"


class TokenData(BaseModel):
    """Token data model."""

    user_id: str
    exp: Optional[datetime] = None


def create_access_token(user_id: str) -> str:
    """Create a new JWT access token."""
    settings = get_app_settings()
    expire = datetime.now(UTC) + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    to_encode = {"user_id": user_id, "exp": expire}
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return encoded_jwt


def decode_access_token(token: str) -> TokenData | None:
    """Return the token data, or None if the token is invalid or expired."""
    settings = get_app_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    user_id: Any | None = payload.get("user_id")
    exp_value = payload.get("exp")
    if not isinstance(user_id, str) or exp_value is None:
        return None

    token_data = TokenData(user_id=user_id, exp=datetime.fromtimestamp(exp_value, tz=UTC))
    if token_data.exp is None or token_data.exp < datetime.now(UTC):
        return None
    return token_data


def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> TokenData | None:
    """
    Logged-in user, if any.

    The token is read from the bearer header, or from the session cookie for
    browser redirects such as the OAuth callback.
    """
    token = credentials.credentials if credentials else request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    return decode_access_token(token)


def get_current_user(user: TokenData | None = Depends(get_optional_user)) -> TokenData:
    """Validate JWT token and return user data."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
