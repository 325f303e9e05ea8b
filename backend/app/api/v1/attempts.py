"""
Exam Portal - Attempt API
Endpoints for sitting exams: start or resume, answer, submit, history
"""
import uuid

from fastapi import APIRouter

from app.api.deps import (
    SERVICE_ERRORS,
    AdminActor,
    CurrentActor,
    DbSession,
    StudentActor,
    to_http_exception,
)
from app.models.attempt import AttemptStatus, ExamAttempt
from app.models.exam import Exam
from app.schemas.attempt import (
    AnswerRequest,
    AnswerResponse,
    AttemptDetailResponse,
    AttemptResponse,
    AttemptSessionResponse,
    AttemptStartRequest,
    ExpireOverdueResponse,
)
from app.schemas.exam import QuestionPublic
from app.services.attempts import ExamAttemptService
from app.services.scoring import is_passed

router = APIRouter(prefix="/attempts", tags=["Attempts"])


def attempt_response(attempt: ExamAttempt, exam: Exam | None) -> AttemptResponse:
    """Attempt summary with pass/fail derived from the exam's passing marks."""
    response = AttemptResponse.model_validate(attempt)
    if exam is not None:
        response.exam_title = exam.title
        response.passing_marks = exam.passing_marks
        response.passed = is_passed(attempt.score, exam.passing_marks)
    return response


@router.post("", response_model=AttemptSessionResponse)
async def start_or_resume_attempt(
    request: AttemptStartRequest,
    actor: StudentActor,
    db: DbSession,
):
    """
    Start an exam, or resume the open attempt at it.
    If the time ran out while away, the attempt comes back already submitted.
    """
    service = ExamAttemptService(db, actor)
    try:
        session = await service.start_or_resume(request.exam_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e

    return AttemptSessionResponse(
        attempt=attempt_response(session.attempt, session.exam),
        exam_title=session.exam.title,
        duration_minutes=session.exam.duration_minutes,
        questions=[QuestionPublic.model_validate(q) for q in session.questions],
        answers=session.answers,
        remaining_seconds=session.remaining_seconds,
        deadline=service.deadline_of(session.attempt, session.exam),
        resumed=session.resumed,
    )


@router.get("/me", response_model=list[AttemptResponse])
async def list_my_attempts(
    actor: CurrentActor,
    db: DbSession,
    status: AttemptStatus | None = None,
):
    """The caller's attempts, newest first."""
    attempts = await ExamAttemptService(db, actor).list_my_attempts(status=status)
    return [attempt_response(a, a.exam) for a in attempts]


@router.post("/expire-overdue", response_model=ExpireOverdueResponse)
async def expire_overdue_attempts(actor: AdminActor, db: DbSession):
    """Submit every open attempt whose deadline has passed."""
    try:
        expired = await ExamAttemptService(db, actor).expire_overdue()
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e
    return ExpireOverdueResponse(expired=expired)


@router.get("/{attempt_id}", response_model=AttemptDetailResponse)
async def get_attempt(attempt_id: uuid.UUID, actor: CurrentActor, db: DbSession):
    try:
        attempt = await ExamAttemptService(db, actor).get_attempt(attempt_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e

    summary = attempt_response(attempt, attempt.exam)
    return AttemptDetailResponse(
        **summary.model_dump(),
        answers=[AnswerResponse.model_validate(a) for a in attempt.answers],
    )


@router.put("/{attempt_id}/answers/{question_id}", response_model=AnswerResponse)
async def record_answer(
    attempt_id: uuid.UUID,
    question_id: uuid.UUID,
    answer: AnswerRequest,
    actor: CurrentActor,
    db: DbSession,
):
    """Save (or change) the selected option for one question."""
    try:
        recorded = await ExamAttemptService(db, actor).record_answer(
            attempt_id, question_id, answer.selected_answer.value
        )
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e
    return AnswerResponse.model_validate(recorded)


@router.post("/{attempt_id}/submit", response_model=AttemptResponse)
async def submit_attempt(attempt_id: uuid.UUID, actor: CurrentActor, db: DbSession):
    """Grade and close the attempt. Also used by the client when its timer runs out."""
    service = ExamAttemptService(db, actor)
    try:
        attempt = await service.submit(attempt_id)
        exam = await db.get(Exam, attempt.exam_id)
    except SERVICE_ERRORS as e:
        raise to_http_exception(e) from e
    return attempt_response(attempt, exam)
