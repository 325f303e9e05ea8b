"""
Exam Portal - Admin Bootstrap
Promotes an existing profile to admin with the service's own database access.

Profiles are always created as students, and only admins can change roles
through the API, so the first admin of a deployment is created here.

Usage:
    python -m app.scripts.promote_admin someone@neu.edu.ph
"""
import argparse
import asyncio

from sqlalchemy import select

from app.core.database import async_session_maker, init_db
from app.models.user import Profile, UserRole
from app.services.profiles import is_admin_email


async def promote_admin(email: str) -> bool:
    """Return True if the profile was promoted."""
    if not is_admin_email(email):
        print(f"Refusing: {email} is outside the admin email domain")
        return False

    await init_db()
    async with async_session_maker() as session:
        result = await session.execute(select(Profile).where(Profile.email == email))
        profile = result.scalar_one_or_none()
        if profile is None:
            print(f"No profile found for {email}; sign in once to create it")
            return False

        profile.role = UserRole.ADMIN
        await session.commit()
        print(f"Promoted {profile.full_name} <{email}> to admin")
        return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Promote a profile to admin")
    parser.add_argument("email")
    args = parser.parse_args()
    ok = asyncio.run(promote_admin(args.email))
    raise SystemExit(0 if ok else 1)


if __name__ == "__main__":
    main()
