"""
Exam Portal - Attempt Schemas
Pydantic schemas for starting, answering and submitting exam attempts
"""
import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.models.attempt import AttemptStatus
from app.models.exam import AnswerOption
from app.schemas.exam import QuestionPublic


class AttemptStartRequest(BaseModel):
    """Request to start or resume an attempt."""
    exam_id: uuid.UUID


class AnswerRequest(BaseModel):
    """The option a student picked for one question."""
    selected_answer: AnswerOption


class AnswerResponse(BaseModel):
    """A recorded answer. `is_correct` stays empty until submission."""
    model_config = ConfigDict(from_attributes=True)

    attempt_id: uuid.UUID
    question_id: uuid.UUID
    selected_answer: AnswerOption
    is_correct: bool | None = None


class AttemptResponse(BaseModel):
    """Summary of an attempt."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    exam_id: uuid.UUID
    student_id: uuid.UUID
    status: AttemptStatus
    started_at: datetime
    completed_at: datetime | None = None
    score: int | None = None
    percentage: float | None = None
    total_marks: int
    exam_title: str | None = None
    passing_marks: int | None = None
    passed: bool | None = None


class AttemptSessionResponse(BaseModel):
    """Response when starting or resuming an attempt."""
    attempt: AttemptResponse
    exam_title: str
    duration_minutes: int
    questions: list[QuestionPublic]
    answers: dict[uuid.UUID, AnswerOption]
    remaining_seconds: int
    deadline: datetime
    resumed: bool


class AttemptDetailResponse(AttemptResponse):
    """An attempt together with its recorded answers."""
    answers: list[AnswerResponse] = []


class ExpireOverdueResponse(BaseModel):
    """Result of sweeping overdue attempts."""
    expired: int
