from beanie import Document, Indexed
from pydantic import Field, EmailStr
from typing import Optional, Annotated
from enum import Enum
from datetime import datetime
from uuid import UUID, uuid4


class UserRole(str, Enum):
    CASHIER = "cashier"
    ADMIN = "admin"
    SUPER_ADMIN = "super admin"

class User(Document):
    id: UUID = Field(default_factory=uuid4)

    username: Annotated[str, Indexed(unique=True)]
    email: Annotated[EmailStr, Indexed(unique=True)]
    hashed_password: str
    role: UserRole

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    last_login: Optional[datetime] = None

    class Settings:
        name = "users"
