"""
Exam Portal - Role Resolver

Resolves an identity's role straight from the profiles table using the
service's own database privileges. Nothing here consults the access
policies, so policies can call it without recursing into themselves.
"""
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import Profile, UserRole


@dataclass(frozen=True)
class Actor:
    """An authenticated identity together with its resolved role."""
    id: uuid.UUID
    role: UserRole | None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT


async def resolve_role(db: AsyncSession, identity_id: uuid.UUID) -> UserRole | None:
    """
    Return the role stored on the identity's profile.

    Returns None when no profile exists; every policy treats a missing role
    as a denial.
    """
    result = await db.execute(
        select(Profile.role).where(Profile.id == identity_id)
    )
    role = result.scalar_one_or_none()
    if role is None:
        return None
    return UserRole(role)


async def resolve_actor(db: AsyncSession, identity_id: uuid.UUID) -> Actor:
    """Build the Actor for a verified identity id."""
    return Actor(id=identity_id, role=await resolve_role(db, identity_id))
