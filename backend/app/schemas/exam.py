"""
Exam Portal - Exam Schemas
Pydantic schemas for exams and multiple-choice questions
"""
import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from app.models.exam import AnswerOption


# ============================================================================
# Exam Schemas
# ============================================================================

class ExamBase(BaseModel):
    """Base exam schema."""
    title: Annotated[str, Field(min_length=1, max_length=200)]
    description: str | None = None
    duration_minutes: Annotated[int, Field(ge=1, le=1440)] = 60
    passing_marks: Annotated[int, Field(ge=0)] = 0
    is_active: bool = True


class ExamCreate(ExamBase):
    """Schema for creating an exam. Total marks follow the questions."""
    subject_id: uuid.UUID


class ExamUpdate(BaseModel):
    """Schema for a partial exam update."""
    subject_id: uuid.UUID | None = None
    title: Annotated[str | None, Field(min_length=1, max_length=200)] = None
    description: str | None = None
    duration_minutes: Annotated[int | None, Field(ge=1, le=1440)] = None
    passing_marks: Annotated[int | None, Field(ge=0)] = None
    is_active: bool | None = None


class ExamResponse(ExamBase):
    """Schema for exam response."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    subject_id: uuid.UUID
    total_marks: int
    created_by: uuid.UUID | None = None
    created_at: datetime


# ============================================================================
# Question Schemas
# ============================================================================

class QuestionBase(BaseModel):
    """Base question schema."""
    question_text: Annotated[str, Field(min_length=1)]
    option_a: Annotated[str, Field(min_length=1)]
    option_b: Annotated[str, Field(min_length=1)]
    option_c: Annotated[str, Field(min_length=1)]
    option_d: Annotated[str, Field(min_length=1)]
    marks: Annotated[int, Field(ge=1)] = 1


class QuestionCreate(QuestionBase):
    """Schema for creating a question. Order defaults to the end of the exam."""
    correct_answer: AnswerOption
    order_number: Annotated[int | None, Field(ge=0)] = None


class QuestionUpdate(BaseModel):
    """Schema for a partial question update."""
    question_text: Annotated[str | None, Field(min_length=1)] = None
    option_a: Annotated[str | None, Field(min_length=1)] = None
    option_b: Annotated[str | None, Field(min_length=1)] = None
    option_c: Annotated[str | None, Field(min_length=1)] = None
    option_d: Annotated[str | None, Field(min_length=1)] = None
    correct_answer: AnswerOption | None = None
    marks: Annotated[int | None, Field(ge=1)] = None
    order_number: Annotated[int | None, Field(ge=0)] = None


class QuestionPublic(QuestionBase):
    """Question as shown to a student sitting the exam (no answer key)."""
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    exam_id: uuid.UUID
    order_number: int


class QuestionResponse(QuestionPublic):
    """Question as shown to admins, including the answer key."""
    correct_answer: AnswerOption
