"""
Exam Portal - Profile Schemas
Pydantic schemas for profile creation, updates and role management
"""
import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.user import UserRole


class ProfileBase(BaseModel):
    """Base profile schema with common fields."""
    full_name: Annotated[str, Field(min_length=1, max_length=200)]
    email: EmailStr


class ProfileCreate(ProfileBase):
    """Schema for creating the caller's own profile after signup."""
    pass


class ProfileUpdate(BaseModel):
    """Schema for a profile owner's self-service update. Role is not editable here."""
    model_config = ConfigDict(extra="forbid")

    full_name: Annotated[str | None, Field(min_length=1, max_length=200)] = None
    email: EmailStr | None = None


class ProfileRoleUpdate(BaseModel):
    """Schema for an admin promoting or demoting a profile."""
    role: UserRole


class ProfileResponse(BaseModel):
    """Schema for profile response."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    full_name: str
    email: str
    role: UserRole
    created_at: datetime
