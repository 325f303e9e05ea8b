"""
Exam Portal - Attempt Models
SQLAlchemy models for student exam attempts and their recorded answers
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, utcnow
from app.models.exam import AnswerOption

if TYPE_CHECKING:
    from app.models.exam import Exam, Question
    from app.models.user import Profile


class AttemptStatus(str, Enum):
    """Lifecycle states of an exam attempt."""
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ExamAttempt(Base):
    """One student's run through one exam."""

    __tablename__ = "exam_attempts"
    __table_args__ = (
        # At most one open attempt per (student, exam)
        Index(
            "uq_exam_attempts_open_per_student",
            "student_id",
            "exam_id",
            unique=True,
            postgresql_where=text("status = 'in_progress'"),
            sqlite_where=text("status = 'in_progress'"),
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
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        index=True
    )
    status: Mapped[AttemptStatus] = mapped_column(
        String(20),
        default=AttemptStatus.IN_PROGRESS
    )

    # Time tracking
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Score details, filled in on submission
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    percentage: Mapped[float | None] = mapped_column(Float, nullable=True)  # 0.0 to 100.0

    # Snapshot of the exam's total marks when the attempt started
    total_marks: Mapped[int] = mapped_column(Integer)

    # Relationships
    exam: Mapped["Exam"] = relationship("Exam", back_populates="attempts")
    student: Mapped["Profile"] = relationship("Profile", back_populates="attempts")
    answers: Mapped[list["StudentAnswer"]] = relationship(
        "StudentAnswer",
        back_populates="attempt",
        cascade="all, delete-orphan"
    )

    @property
    def is_open(self) -> bool:
        return self.status == AttemptStatus.IN_PROGRESS


class StudentAnswer(Base):
    """The option a student selected for one question within an attempt."""

    __tablename__ = "student_answers"
    __table_args__ = (
        UniqueConstraint("attempt_id", "question_id", name="uq_student_answers_attempt_question"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4
    )
    attempt_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("exam_attempts.id", ondelete="CASCADE"),
        index=True
    )
    question_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("questions.id", ondelete="CASCADE"),
        index=True
    )
    selected_answer: Mapped[AnswerOption] = mapped_column(String(1))

    # Populated only when the attempt is submitted
    is_correct: Mapped[bool | None] = mapped_column(Boolean, nullable=True)

    answered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow
    )

    # Relationships
    attempt: Mapped["ExamAttempt"] = relationship("ExamAttempt", back_populates="answers")
    question: Mapped["Question"] = relationship("Question", back_populates="answers")
