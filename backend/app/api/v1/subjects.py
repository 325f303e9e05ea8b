"""
Exam Portal - Subject API
Endpoints for browsing and managing subjects
"""
from uuid import UUID

from fastapi import APIRouter, status

from app.api.deps import SERVICE_ERRORS, AdminActor, CurrentActor, DbSession, to_http_exception
from app.schemas.curriculum import SubjectCreate, SubjectResponse, SubjectUpdate
from app.services.catalog import CatalogService

router = APIRouter(prefix="/subjects", tags=["Subjects"])


@router.get("", response_model=list[SubjectResponse])
async def list_subjects(actor: CurrentActor, db: DbSession):
    """
    List subjects. Admins see every subject, students only active ones.
    """
    return await CatalogService(db, actor).list_subjects()


@router.get("/{subject_id}", response_model=SubjectResponse)
async def get_subject(subject_id: UUID, actor: CurrentActor, db: DbSession):
    try:
        return await CatalogService(db, actor).get_subject(subject_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e


@router.post("", response_model=SubjectResponse, status_code=status.HTTP_201_CREATED)
async def create_subject(subject_data: SubjectCreate, actor: AdminActor, db: DbSession):
    try:
        return await CatalogService(db, actor).create_subject(subject_data.model_dump())
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e


@router.patch("/{subject_id}", response_model=SubjectResponse)
async def update_subject(
    subject_id: UUID,
    subject_update: SubjectUpdate,
    actor: AdminActor,
    db: DbSession,
):
    update_data = subject_update.model_dump(exclude_unset=True, exclude_none=True)
    try:
        return await CatalogService(db, actor).update_subject(subject_id, update_data)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e


@router.delete("/{subject_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subject(subject_id: UUID, actor: AdminActor, db: DbSession) -> None:
    """
    Delete a subject and, with it, its exams, questions and attempts.
    """
    try:
        await CatalogService(db, actor).delete_subject(subject_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e
