from typing import Annotated
from beanie import Document, Indexed
from pydantic import Field
from uuid import UUID, uuid4
from datetime import datetime

class Category(Document):
    id: UUID = Field(default_factory=uuid4)
    name: Annotated[str, Indexed(unique=True)]
    description: str = ""

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "categories"
