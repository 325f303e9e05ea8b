"""
Exam Portal - Catalog Service
Subject, exam and question management with total-marks bookkeeping
"""
import logging
import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.curriculum import Subject
from app.models.exam import Exam, Question
from app.services.errors import NotFoundError, ValidationError
from app.services.policies import Operation, authorize, can_access
from app.services.roles import Actor

logger = logging.getLogger(__name__)


class CatalogService:
    """
    Service for the admin-owned catalog.

    Admins may change any subject, exam or question; everyone else only sees
    active subjects and exams and the questions of active exams.
    """

    def __init__(self, db: AsyncSession, actor: Actor):
        self.db = db
        self.actor = actor

    # ========================================================================
    # Subjects
    # ========================================================================

    async def list_subjects(self) -> list[Subject]:
        query = select(Subject).order_by(Subject.created_at.desc())
        if not self.actor.is_admin:
            query = query.where(Subject.is_active.is_(True))
        result = await self.db.execute(query)
        return [
            s for s in result.scalars().all()
            if can_access(self.actor, s, Operation.READ)
        ]

    async def get_subject(self, subject_id: uuid.UUID) -> Subject:
        subject = await self.db.get(Subject, subject_id)
        if subject is None or not can_access(self.actor, subject, Operation.READ):
            raise NotFoundError("Subject not found")
        return subject

    async def create_subject(self, data: dict[str, Any]) -> Subject:
        subject = Subject(created_by=self.actor.id, **data)
        authorize(self.actor, subject, Operation.CREATE)

        self.db.add(subject)
        await self.db.flush()
        await self.db.refresh(subject)
        logger.info("Subject %s created by %s", subject.id, self.actor.id)
        return subject

    async def update_subject(self, subject_id: uuid.UUID, data: dict[str, Any]) -> Subject:
        subject = await self.get_subject(subject_id)
        authorize(self.actor, subject, Operation.UPDATE, fields=data.keys())

        for field, value in data.items():
            setattr(subject, field, value)
        await self.db.flush()
        await self.db.refresh(subject)
        return subject

    async def delete_subject(self, subject_id: uuid.UUID) -> None:
        """Delete a subject together with its exams, questions and attempts."""
        subject = await self.get_subject(subject_id)
        authorize(self.actor, subject, Operation.DELETE)

        await self.db.delete(subject)
        await self.db.flush()
        logger.info("Subject %s deleted by %s", subject_id, self.actor.id)

    # ========================================================================
    # Exams
    # ========================================================================

    async def list_exams(self, subject_id: uuid.UUID | None = None) -> list[Exam]:
        query = select(Exam).order_by(Exam.created_at.desc())
        if subject_id is not None:
            query = query.where(Exam.subject_id == subject_id)
        if not self.actor.is_admin:
            query = query.where(Exam.is_active.is_(True))
        result = await self.db.execute(query)
        return [
            e for e in result.scalars().all()
            if can_access(self.actor, e, Operation.READ)
        ]

    async def get_exam(self, exam_id: uuid.UUID) -> Exam:
        exam = await self.db.get(Exam, exam_id)
        if exam is None or not can_access(self.actor, exam, Operation.READ):
            raise NotFoundError("Exam not found")
        return exam

    async def create_exam(self, data: dict[str, Any]) -> Exam:
        subject = await self.db.get(Subject, data["subject_id"])
        if subject is None:
            raise ValidationError("Subject does not exist")

        # total_marks starts at zero and follows the questions from here on
        exam = Exam(created_by=self.actor.id, total_marks=0, **data)
        authorize(self.actor, exam, Operation.CREATE)

        self.db.add(exam)
        await self.db.flush()
        await self.db.refresh(exam)
        logger.info("Exam %s created by %s", exam.id, self.actor.id)
        return exam

    async def update_exam(self, exam_id: uuid.UUID, data: dict[str, Any]) -> Exam:
        exam = await self.get_exam(exam_id)
        authorize(self.actor, exam, Operation.UPDATE, fields=data.keys())

        if "subject_id" in data and await self.db.get(Subject, data["subject_id"]) is None:
            raise ValidationError("Subject does not exist")

        for field, value in data.items():
            setattr(exam, field, value)
        await self.db.flush()
        await self.db.refresh(exam)
        return exam

    async def delete_exam(self, exam_id: uuid.UUID) -> None:
        exam = await self.get_exam(exam_id)
        authorize(self.actor, exam, Operation.DELETE)

        await self.db.delete(exam)
        await self.db.flush()
        logger.info("Exam %s deleted by %s", exam_id, self.actor.id)

    # ========================================================================
    # Questions
    # ========================================================================

    async def list_questions(self, exam_id: uuid.UUID) -> list[Question]:
        """Questions of an exam in display order."""
        exam = await self.get_exam(exam_id)
        result = await self.db.execute(
            select(Question)
            .where(Question.exam_id == exam.id)
            .order_by(Question.order_number, Question.created_at, Question.id)
        )
        return [
            q for q in result.scalars().all()
            if can_access(self.actor, q, Operation.READ, parent=exam)
        ]

    async def get_question(self, question_id: uuid.UUID) -> tuple[Question, Exam]:
        question = await self.db.get(Question, question_id)
        if question is None:
            raise NotFoundError("Question not found")
        exam = await self.db.get(Exam, question.exam_id)
        if not can_access(self.actor, question, Operation.READ, parent=exam):
            raise NotFoundError("Question not found")
        return question, exam

    async def create_question(self, exam_id: uuid.UUID, data: dict[str, Any]) -> Question:
        exam = await self.get_exam(exam_id)

        if data.get("order_number") is None:
            data = {**data, "order_number": await self._next_order_number(exam.id)}

        question = Question(exam_id=exam.id, **data)
        authorize(self.actor, question, Operation.CREATE, parent=exam)

        self.db.add(question)
        await self.db.flush()
        await self.sync_total_marks(exam)
        await self.db.refresh(question)
        return question

    async def update_question(self, question_id: uuid.UUID, data: dict[str, Any]) -> Question:
        question, exam = await self.get_question(question_id)
        authorize(self.actor, question, Operation.UPDATE, parent=exam, fields=data.keys())

        for field, value in data.items():
            setattr(question, field, value)
        await self.db.flush()
        await self.sync_total_marks(exam)
        await self.db.refresh(question)
        return question

    async def delete_question(self, question_id: uuid.UUID) -> None:
        question, exam = await self.get_question(question_id)
        authorize(self.actor, question, Operation.DELETE, parent=exam)

        await self.db.delete(question)
        await self.db.flush()
        await self.sync_total_marks(exam)

    async def sync_total_marks(self, exam: Exam) -> int:
        """Set the exam's total marks to the sum of its questions' marks."""
        result = await self.db.execute(
            select(func.coalesce(func.sum(Question.marks), 0))
            .where(Question.exam_id == exam.id)
        )
        exam.total_marks = int(result.scalar_one())
        await self.db.flush()
        return exam.total_marks

    async def _next_order_number(self, exam_id: uuid.UUID) -> int:
        result = await self.db.execute(
            select(func.coalesce(func.max(Question.order_number), 0))
            .where(Question.exam_id == exam_id)
        )
        return int(result.scalar_one()) + 1
