"""
Exam Portal - Question API
Admin endpoints for editing and removing individual questions
"""
import uuid

from fastapi import APIRouter, status

from app.api.deps import SERVICE_ERRORS, AdminActor, DbSession, to_http_exception
from app.schemas.exam import QuestionResponse, QuestionUpdate
from app.services.catalog import CatalogService

router = APIRouter(prefix="/questions", tags=["Questions"])


@router.patch("/{question_id}", response_model=QuestionResponse)
async def update_question(
    question_id: uuid.UUID,
    question_update: QuestionUpdate,
    actor: AdminActor,
    db: DbSession,
):
    """Edit a question; the exam's total marks are recomputed."""
    update_data = question_update.model_dump(exclude_unset=True, exclude_none=True)
    try:
        return await CatalogService(db, actor).update_question(question_id, update_data)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e


@router.delete("/{question_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_question(question_id: uuid.UUID, actor: AdminActor, db: DbSession) -> None:
    try:
        await CatalogService(db, actor).delete_question(question_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e
