"""
Exam Portal - Exam API
Endpoints for browsing exams and for admin management of exams and questions
"""
import uuid

from fastapi import APIRouter, status

from app.api.deps import SERVICE_ERRORS, AdminActor, CurrentActor, DbSession, to_http_exception
from app.api.v1.attempts import attempt_response
from app.schemas.attempt import AttemptResponse
from app.schemas.exam import (
    ExamCreate,
    ExamResponse,
    ExamUpdate,
    QuestionCreate,
    QuestionResponse,
)
from app.services.attempts import ExamAttemptService
from app.services.catalog import CatalogService

router = APIRouter(prefix="/exams", tags=["Exams"])


@router.get("", response_model=list[ExamResponse])
async def list_exams(
    actor: CurrentActor,
    db: DbSession,
    subject_id: uuid.UUID | None = None,
):
    """
    List exams, optionally for one subject.
    Admins see every exam; students only active ones.
    """
    return await CatalogService(db, actor).list_exams(subject_id=subject_id)


@router.get("/{exam_id}", response_model=ExamResponse)
async def get_exam(exam_id: uuid.UUID, actor: CurrentActor, db: DbSession):
    try:
        return await CatalogService(db, actor).get_exam(exam_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e


@router.post("", response_model=ExamResponse, status_code=status.HTTP_201_CREATED)
async def create_exam(exam_data: ExamCreate, actor: AdminActor, db: DbSession):
    try:
        return await CatalogService(db, actor).create_exam(exam_data.model_dump())
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e


@router.patch("/{exam_id}", response_model=ExamResponse)
async def update_exam(
    exam_id: uuid.UUID,
    exam_update: ExamUpdate,
    actor: AdminActor,
    db: DbSession,
):
    update_data = exam_update.model_dump(exclude_unset=True, exclude_none=True)
    try:
        return await CatalogService(db, actor).update_exam(exam_id, update_data)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e


@router.delete("/{exam_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_exam(exam_id: uuid.UUID, actor: AdminActor, db: DbSession) -> None:
    try:
        await CatalogService(db, actor).delete_exam(exam_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e


# ============================================================================
# Questions
# ============================================================================

@router.get("/{exam_id}/questions", response_model=list[QuestionResponse])
async def list_questions(exam_id: uuid.UUID, actor: AdminActor, db: DbSession):
    """
    List an exam's questions with their answer keys, in display order.
    Students receive questions without keys when they start an attempt.
    """
    try:
        return await CatalogService(db, actor).list_questions(exam_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e


@router.post(
    "/{exam_id}/questions",
    response_model=QuestionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_question(
    exam_id: uuid.UUID,
    question_data: QuestionCreate,
    actor: AdminActor,
    db: DbSession,
):
    """Add a question; the exam's total marks are recomputed."""
    try:
        return await CatalogService(db, actor).create_question(exam_id, question_data.model_dump())
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e


@router.get("/{exam_id}/attempts", response_model=list[AttemptResponse])
async def list_exam_attempts(exam_id: uuid.UUID, actor: AdminActor, db: DbSession):
    """All attempts at an exam, newest first."""
    try:
        await CatalogService(db, actor).get_exam(exam_id)
        attempts = await ExamAttemptService(db, actor).list_exam_attempts(exam_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e
    return [attempt_response(a, a.exam) for a in attempts]
