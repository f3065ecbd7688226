from typing import Annotated
from beanie import Document, Indexed
from pydantic import Field
from uuid import UUID, uuid4
from datetime import datetime


class Otp(Document):
    """Password-reset code, one live code per email."""
    id: UUID = Field(default_factory=uuid4)
    email: Annotated[str, Indexed()]
    otp: str
    expires_at: datetime
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "otps"

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.utcnow()) > self.expires_at
