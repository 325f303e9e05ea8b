"""
Exam Portal - Curriculum Schemas
Pydantic schemas for subjects
"""
import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class SubjectBase(BaseModel):
    """Base subject schema."""
    name: Annotated[str, Field(min_length=1, max_length=100)]
    description: str | None = None
    is_active: bool = True


class SubjectCreate(SubjectBase):
    """Schema for creating a subject."""
    pass


class SubjectUpdate(BaseModel):
    """Schema for a partial subject update."""
    name: Annotated[str | None, Field(min_length=1, max_length=100)] = None
    description: str | None = None
    is_active: bool | None = None


class SubjectResponse(SubjectBase):
    """Schema for subject response."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_by: uuid.UUID | None = None
    created_at: datetime
