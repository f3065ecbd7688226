import logging
from fastapi import APIRouter, Depends, HTTPException, status
from typing import List
from datetime import datetime
from uuid import UUID

from pos_backend.core.exceptions import Conflict
from pos_backend.core.logging import sanitize_dict
from pos_backend.core.security import get_password_hash
from pos_backend.dependencies.auth import Actor, get_current_actor, get_super_admin
from pos_backend.models.user import User, UserRole
from pos_backend.schemas.user import LoginRequest, LoginResponse, UserCreate, UserUpdate, UserResponse, UserEnvelope
from pos_backend.services.accounts import authenticate, issue_access_token

router = APIRouter()
logger = logging.getLogger(__name__)


async def _get_user_or_404(user_id: UUID) -> User:
    user = await User.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found.")
    return user


async def _ensure_unique(username: str | None = None, email: str | None = None, exclude: UUID | None = None):
    clauses = []
    if username:
        clauses.append({"username": username})
    if email:
        clauses.append({"email": email})
    if not clauses:
        return

    clash = await User.find_one({"$or": clauses})
    if clash and clash.id != exclude:
        field = "username" if username and clash.username == username else "email"
        raise Conflict(f"A user with this {field} already exists.")


# ---------------------------------------------------------
# 1. LOGIN (JSON body)
# ---------------------------------------------------------
@router.post("/login", response_model=LoginResponse)
async def login(credentials: LoginRequest):
    """Sign in with `username` or `email` plus `password`."""
    user = await authenticate(credentials.password, username=credentials.username, email=credentials.email)
    logger.info("User %s signed in", user.username)
    return {"access_token": issue_access_token(user), "user": user}


# ---------------------------------------------------------
# 2. MY PROFILE
# ---------------------------------------------------------
@router.get("/me", response_model=UserResponse)
async def get_my_profile(actor: Actor = Depends(get_current_actor)):
    user = await _get_user_or_404(actor.id)
    await user.set({User.last_login: datetime.utcnow()})
    return user


# ---------------------------------------------------------
# 3. USER MANAGEMENT (Super Admin only)
# ---------------------------------------------------------
@router.post("", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    admin: Actor = Depends(get_super_admin)
):
    logger.debug("Create user request: %s", sanitize_dict(user_data.model_dump()))

    username = user_data.username.strip()
    await _ensure_unique(username=username, email=user_data.email)

    new_user = User(
        username=username,
        email=user_data.email,
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
    )
    await new_user.insert()
    logger.info("User %s (%s) created by %s", new_user.username, new_user.role.value, admin.id)

    return {"message": "User created successfully.", "user": new_user}


@router.get("", response_model=List[UserResponse])
async def list_users(admin: Actor = Depends(get_super_admin)):
    return await User.find_all().sort(-User.created_at).to_list()


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: UUID, admin: Actor = Depends(get_super_admin)):
    return await _get_user_or_404(user_id)


@router.patch("/{user_id}", response_model=UserEnvelope)
async def update_user(
    user_id: UUID,
    update_data: UserUpdate,
    admin: Actor = Depends(get_super_admin)
):
    """Change a user's username, email or role (cashier / admin)."""
    user = await _get_user_or_404(user_id)

    changes = update_data.model_dump(exclude_unset=True, exclude_none=True)
    if "username" in changes:
        changes["username"] = changes["username"].strip()
    await _ensure_unique(username=changes.get("username"), email=changes.get("email"), exclude=user.id)

    if user.role == UserRole.SUPER_ADMIN and changes.get("role"):
        raise HTTPException(status_code=400, detail="The super admin's role cannot be changed.")

    changes["updated_at"] = datetime.utcnow()
    await user.set(changes)

    return {"message": "User updated successfully.", "user": await _get_user_or_404(user_id)}


@router.delete("/{user_id}")
async def delete_user(user_id: UUID, admin: Actor = Depends(get_super_admin)):
    user = await _get_user_or_404(user_id)
    if user.id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account.")

    await user.delete()
    logger.info("User %s deleted by %s", user.username, admin.id)
    return {"message": "User deleted successfully."}
