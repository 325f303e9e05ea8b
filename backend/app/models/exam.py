"""
Exam Portal - Exam Models
SQLAlchemy models for exams and their multiple-choice questions
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, utcnow

if TYPE_CHECKING:
    from app.models.attempt import ExamAttempt, StudentAnswer
    from app.models.curriculum import Subject


class AnswerOption(str, Enum):
    """The four choices of a multiple-choice question."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class Exam(Base):
    """A timed exam belonging to a subject."""

    __tablename__ = "exams"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    subject_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("subjects.id", ondelete="CASCADE"),
        index=True
    )
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_minutes: Mapped[int] = mapped_column(Integer, default=60)

    # Kept equal to the sum of question marks by the catalog service
    total_marks: Mapped[int] = mapped_column(Integer, default=0)
    passing_marks: Mapped[int] = mapped_column(Integer, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow
    )

    # Relationships
    subject: Mapped["Subject"] = relationship("Subject", back_populates="exams")
    questions: Mapped[list["Question"]] = relationship(
        "Question",
        back_populates="exam",
        cascade="all, delete-orphan",
        order_by=lambda: (Question.order_number, Question.created_at, Question.id)
    )
    attempts: Mapped[list["ExamAttempt"]] = relationship(
        "ExamAttempt",
        back_populates="exam",
        cascade="all, delete-orphan"
    )


class Question(Base):
    """A four-option multiple-choice question."""

    __tablename__ = "questions"
    __table_args__ = (
        CheckConstraint("marks >= 1", name="ck_questions_marks_positive"),
        CheckConstraint(
            "correct_answer IN ('A', 'B', 'C', 'D')",
            name="ck_questions_correct_answer"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    exam_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("exams.id", ondelete="CASCADE"),
        index=True
    )
    question_text: Mapped[str] = mapped_column(Text)
    option_a: Mapped[str] = mapped_column(Text)
    option_b: Mapped[str] = mapped_column(Text)
    option_c: Mapped[str] = mapped_column(Text)
    option_d: Mapped[str] = mapped_column(Text)
    correct_answer: Mapped[AnswerOption] = mapped_column(String(1))
    marks: Mapped[int] = mapped_column(Integer, default=1)

    # Not unique; ties fall back to creation order
    order_number: Mapped[int] = mapped_column(Integer, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now()
    )

    # Relationships
    exam: Mapped["Exam"] = relationship("Exam", back_populates="questions")
    answers: Mapped[list["StudentAnswer"]] = relationship(
        "StudentAnswer",
        back_populates="question",
        cascade="all, delete-orphan"
    )
