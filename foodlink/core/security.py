from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Literal, Optional

import jwt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from pydantic import BaseModel

from foodlink.core.config import settings
from foodlink.core.errors import NotAuthenticated, forbidden

Role = Literal["store", "volunteer", "staff"]

# Tokens come from the external identity provider; tokenUrl is only for the docs UI
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


class Actor(BaseModel):
    id: str
    role: Role
    email: Optional[str] = None


def create_token(payload: Dict[str, Any], minutes: int | None = None) -> str:
    payload = dict(payload)
    ttl = minutes if minutes is not None else settings.access_ttl_min
    payload["exp"] = datetime.now(timezone.utc) + timedelta(minutes=ttl)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def token_for(actor_id: str, role: str, email: str | None = None) -> str:
    claims = {"sub": actor_id, "role": role}
    if email:
        claims["email"] = email
    return create_token(claims)


def decode_token(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
    except jwt.ExpiredSignatureError:
        raise NotAuthenticated("Token expired")
    except jwt.InvalidTokenError:
        raise NotAuthenticated("Invalid token")


async def get_current_actor(token: Optional[str] = Depends(oauth2_scheme)) -> Actor:
    if not token:
        raise NotAuthenticated("Sign in required")
    data = decode_token(token)
    if not data.get("sub") or data.get("role") not in ("store", "volunteer", "staff"):
        raise NotAuthenticated("Token is missing actor id or role")
    return Actor(id=data["sub"], role=data["role"], email=data.get("email"))


def require_role(*roles: str):
    async def checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise forbidden(f"This action requires role: {', '.join(roles)}")
        return actor
    return checker
