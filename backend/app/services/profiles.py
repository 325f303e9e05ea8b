"""
Exam Portal - Profile Service
Business logic for identity profiles and role management
"""
import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.user import Profile, UserRole
from app.services.errors import AlreadyExistsError, NotFoundError, ValidationError
from app.services.policies import Operation, authorize, can_access
from app.services.roles import Actor

logger = logging.getLogger(__name__)


def is_admin_email(email: str, domain: str | None = None) -> bool:
    """Admin accounts are limited to the configured email domain."""
    domain = settings.ADMIN_EMAIL_DOMAIN if domain is None else domain
    if not domain:
        return True
    return email.lower().endswith(f"@{domain.lower()}")


class ProfileService:
    """Service for profile operations."""

    def __init__(self, db: AsyncSession, actor: Actor):
        self.db = db
        self.actor = actor

    async def get_profile(self, profile_id: uuid.UUID) -> Profile:
        profile = await self.db.get(Profile, profile_id)
        if profile is None or not can_access(self.actor, profile, Operation.READ):
            raise NotFoundError("Profile not found")
        return profile

    async def list_profiles(self) -> list[Profile]:
        result = await self.db.execute(
            select(Profile).order_by(Profile.created_at.desc())
        )
        return [
            p for p in result.scalars().all()
            if can_access(self.actor, p, Operation.READ)
        ]

    async def create_own_profile(self, full_name: str, email: str) -> Profile:
        """
        Create the caller's profile after signing up with the identity provider.

        New profiles are always students; promotion is an admin operation.

        Raises:
            AlreadyExistsError: If the caller already has a profile or the
                email is taken
        """
        if await self.db.get(Profile, self.actor.id) is not None:
            raise AlreadyExistsError("Profile already exists")
        await self._ensure_email_free(email)

        profile = Profile(
            id=self.actor.id,
            full_name=full_name,
            email=email,
            role=UserRole.STUDENT,
        )
        authorize(self.actor, profile, Operation.CREATE)

        self.db.add(profile)
        await self.db.flush()
        await self.db.refresh(profile)
        logger.info("Profile created for identity %s", profile.id)
        return profile

    async def update_profile(self, profile_id: uuid.UUID, data: dict[str, Any]) -> Profile:
        profile = await self.get_profile(profile_id)
        authorize(self.actor, profile, Operation.UPDATE, fields=data.keys())

        if "email" in data and data["email"] != profile.email:
            await self._ensure_email_free(data["email"])

        for field, value in data.items():
            setattr(profile, field, value)
        await self.db.flush()
        await self.db.refresh(profile)
        return profile

    async def set_role(self, profile_id: uuid.UUID, role: UserRole) -> Profile:
        """
        Promote or demote a profile.

        Raises:
            ValidationError: If promoting an email outside the admin domain
        """
        profile = await self.get_profile(profile_id)
        authorize(self.actor, profile, Operation.UPDATE, fields=("role",))

        if role == UserRole.ADMIN and not is_admin_email(profile.email):
            raise ValidationError(
                f"Admin accounts require an @{settings.ADMIN_EMAIL_DOMAIN} email address"
            )

        previous = profile.role
        profile.role = role
        await self.db.flush()
        await self.db.refresh(profile)
        logger.info(
            "Profile %s role changed from %s to %s by %s",
            profile.id, previous, role.value, self.actor.id,
        )
        return profile

    async def _ensure_email_free(self, email: str) -> None:
        result = await self.db.execute(select(Profile.id).where(Profile.email == email))
        if result.scalar_one_or_none() is not None:
            raise AlreadyExistsError("Email already registered")
