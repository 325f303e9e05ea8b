"""
Exam Portal - API Dependencies
FastAPI dependencies for authentication, authorization and error translation
"""
import logging
import uuid
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import verify_token
from app.models.user import UserRole
from app.services.errors import (
    AlreadyExistsError,
    AttemptClosedError,
    ExamNotAvailableError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.services.roles import Actor, resolve_actor

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer()

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> uuid.UUID:
    """
    Get the identity id from the identity provider's bearer token.

    Raises:
        HTTPException: If the token is invalid or its subject is not a UUID
    """
    subject = verify_token(credentials.credentials)
    try:
        return uuid.UUID(subject)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_identity_actor(
    identity_id: Annotated[uuid.UUID, Depends(get_current_identity)],
    db: DbSession,
) -> Actor:
    """Actor for the caller, whose role may be absent if no profile exists yet."""
    return await resolve_actor(db, identity_id)


async def get_current_actor(
    actor: Annotated[Actor, Depends(get_identity_actor)],
) -> Actor:
    """
    Actor for a caller with a profile.

    Raises:
        HTTPException: If the caller has not created a profile
    """
    if actor.role is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Profile required",
        )
    return actor


def require_role(*roles: UserRole):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.get("/admin")
        async def admin_only(actor: Actor = Depends(require_role(UserRole.ADMIN))):
            ...
    """
    async def role_checker(
        actor: Annotated[Actor, Depends(get_current_actor)],
    ) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permission denied",
            )
        return actor

    return role_checker


def to_http_exception(exc: Exception) -> HTTPException:
    """Translate a service-layer or transient database error into an HTTP error."""
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Permission denied")
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, (AlreadyExistsError, ExamNotAvailableError, AttemptClosedError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, (OperationalError, InterfaceError)):
        logger.warning("Database unavailable: %s", exc)
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service temporarily unavailable, please retry",
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal error")


# Errors every route translates with to_http_exception
SERVICE_ERRORS = (
    PermissionDeniedError,
    NotFoundError,
    ValidationError,
    AlreadyExistsError,
    ExamNotAvailableError,
    AttemptClosedError,
    OperationalError,
    InterfaceError,
)

# Type aliases for common dependencies
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
IdentityActor = Annotated[Actor, Depends(get_identity_actor)]
AdminActor = Annotated[Actor, Depends(require_role(UserRole.ADMIN))]
StudentActor = Annotated[Actor, Depends(require_role(UserRole.STUDENT))]
