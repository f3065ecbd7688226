from pydantic import Field
from typing import Optional
from uuid import UUID
from datetime import datetime

from pos_backend.schemas.base import APIModel

# Input: What you send to create a category
class CategoryCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = ""

# Input: What you send to update a category
class CategoryUpdate(APIModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None

# Output: What the API sends back to you
class CategoryResponse(APIModel):
    id: UUID
    name: str
    description: Optional[str] = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
