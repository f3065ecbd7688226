from typing import Iterable
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from pydantic import BaseModel

from pos_backend.core.security import decode_access_token
from pos_backend.models.user import UserRole
from pos_backend.services import accounts

# 1. SETUP OAUTH2
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


class Actor(BaseModel):
    """The caller: the account named by a verified access token, as currently stored."""
    id: UUID
    role: UserRole
    username: str | None = None


# 2. CAPABILITY CHECK (the one place roles are compared)
def has_role(actor_role: UserRole | str, required_roles: Iterable[UserRole | str]) -> bool:
    try:
        role = UserRole(actor_role)
    except ValueError:
        return False
    return role in {UserRole(r) for r in required_roles}


def is_super_admin(actor: Actor) -> bool:
    return has_role(actor.role, [UserRole.SUPER_ADMIN])


# 3. GET CURRENT ACTOR (Base Dependency)
async def get_current_actor(token: str = Depends(oauth2_scheme)) -> Actor:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except JWTError:
        raise credentials_exception

    if payload.get("type") != "access" or payload.get("sub") is None:
        raise credentials_exception

    try:
        user_id = UUID(str(payload["sub"]))
    except ValueError:
        raise credentials_exception

    # Role and name come from the stored account, not the token
    user = await accounts.find_user(user_id)
    if user is None:
        raise credentials_exception
    return Actor(id=user.id, role=user.role, username=user.username)


# 4. ROLE GATE
def require_roles(*roles: UserRole):
    """
    Dependency factory: lets the request through only when the actor holds one of ``roles``.
    Usage: ``admin: Actor = Depends(require_roles(UserRole.ADMIN, UserRole.SUPER_ADMIN))``
    """
    async def checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not has_role(actor.role, roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied: no permission"
            )
        return actor

    return checker


get_catalog_manager = require_roles(UserRole.ADMIN, UserRole.SUPER_ADMIN)
get_super_admin = require_roles(UserRole.SUPER_ADMIN)
