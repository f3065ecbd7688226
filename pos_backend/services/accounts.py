import logging
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status

from pos_backend.core.security import create_access_token, verify_password
from pos_backend.models.user import User

logger = logging.getLogger(__name__)


def token_claims(user: User) -> dict:
    return {"sub": str(user.id), "role": user.role.value, "username": user.username}


def issue_access_token(user: User) -> str:
    return create_access_token(data=token_claims(user))


async def find_by_identifier(username: Optional[str] = None, email: Optional[str] = None) -> Optional[User]:
    if email:
        return await User.find_one(User.email == email.strip().lower())
    if username:
        return await User.find_one(User.username == username.strip())
    return None


async def find_user(user_id: UUID) -> Optional[User]:
    return await User.get(user_id)


async def authenticate(password: str, username: Optional[str] = None, email: Optional[str] = None) -> User:
    """Unknown account -> 404, wrong password -> 401."""
    user = await find_by_identifier(username=username, email=email)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

    if not verify_password(password, user.hashed_password):
        logger.warning("Failed login for %s", user.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
