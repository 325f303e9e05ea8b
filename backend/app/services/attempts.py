"""
Exam Portal - Exam Attempt Service

State machine for a student's attempt at an exam:

    start ──> in_progress ──(submit | deadline passed)──> completed

The deadline is computed on the server from `started_at + duration_minutes`,
so an attempt is finalized even when the client never reports that time ran
out. Completed attempts are terminal.
"""
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.database import utcnow
from app.models.attempt import AttemptStatus, ExamAttempt, StudentAnswer
from app.models.exam import AnswerOption, Exam, Question
from app.services.errors import (
    AttemptClosedError,
    AttemptExpiredError,
    ExamNotAvailableError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from app.services.policies import Operation, authorize, can_access
from app.services.roles import Actor
from app.services.scoring import ScoreResult, attempt_deadline, remaining_seconds, score_answers

logger = logging.getLogger(__name__)


@dataclass
class AttemptSession:
    """Everything a student needs to sit (or resume) an exam."""
    attempt: ExamAttempt
    exam: Exam
    questions: list[Question]
    answers: dict[uuid.UUID, str] = field(default_factory=dict)
    remaining_seconds: int = 0
    resumed: bool = False


class ExamAttemptService:
    """Service for starting, answering and submitting exam attempts."""

    def __init__(
        self,
        db: AsyncSession,
        actor: Actor,
        clock: Callable[[], datetime] = utcnow,
        grace_seconds: int | None = None,
    ):
        self.db = db
        self.actor = actor
        self.clock = clock
        self.grace = timedelta(
            seconds=settings.ATTEMPT_GRACE_SECONDS if grace_seconds is None else grace_seconds
        )

    # ========================================================================
    # Start / resume
    # ========================================================================

    async def start_or_resume(self, exam_id: uuid.UUID) -> AttemptSession:
        """
        Resume the caller's open attempt at an exam, or start a new one.

        A resumed attempt whose time has already run out is submitted on the
        spot and returned completed with no time remaining.

        Raises:
            NotFoundError: If the exam does not exist
            ExamNotAvailableError: If the exam is not active
            PermissionDeniedError: If the caller may not sit exams
        """
        exam = await self.db.get(Exam, exam_id)
        if exam is None:
            raise NotFoundError("Exam not found")
        if not exam.is_active:
            raise ExamNotAvailableError()
        questions = await self._exam_questions(exam.id)
        if not questions:
            raise ExamNotAvailableError("Exam has no questions")

        now = self.clock()
        attempt = await self._find_open_attempt(exam.id)
        resumed = attempt is not None

        if attempt is None:
            attempt = ExamAttempt(
                exam_id=exam.id,
                student_id=self.actor.id,
                status=AttemptStatus.IN_PROGRESS,
                started_at=now,
                total_marks=exam.total_marks,
            )
            authorize(self.actor, attempt, Operation.CREATE)
            try:
                async with self.db.begin_nested():
                    self.db.add(attempt)
            except IntegrityError:
                # A concurrent start won the unique open-attempt index
                attempt = await self._find_open_attempt(exam.id)
                if attempt is None:
                    raise
                resumed = True
            else:
                logger.info(
                    "Attempt %s started on exam %s by %s",
                    attempt.id, exam.id, self.actor.id,
                )
        else:
            authorize(self.actor, attempt, Operation.READ)

        left = remaining_seconds(attempt.started_at, exam.duration_minutes, now)
        if resumed and left == 0:
            logger.info("Attempt %s resumed after its deadline; submitting", attempt.id)
            await self._finalize(attempt)

        answers = await self._attempt_answers(attempt.id)
        return AttemptSession(
            attempt=attempt,
            exam=exam,
            questions=questions,
            answers={a.question_id: a.selected_answer for a in answers},
            remaining_seconds=left,
            resumed=resumed,
        )

    # ========================================================================
    # Answer
    # ========================================================================

    async def record_answer(
        self,
        attempt_id: uuid.UUID,
        question_id: uuid.UUID,
        selected_answer: str,
    ) -> StudentAnswer:
        """
        Upsert the caller's choice for one question.

        Correctness is not evaluated here; it is filled in on submission.

        Raises:
            AttemptClosedError: If the attempt is already completed
            AttemptExpiredError: If the deadline has passed; the attempt is
                submitted and committed before this is raised
        """
        choice = self._parse_choice(selected_answer)
        attempt = await self._get_attempt_for_update(attempt_id)

        if not attempt.is_open:
            raise AttemptClosedError()

        exam = await self.db.get(Exam, attempt.exam_id)
        if self._is_past_deadline(attempt, exam):
            await self._finalize(attempt)
            # Keep the automatic submission even though this request fails
            await self.db.commit()
            raise AttemptExpiredError()

        question = await self.db.get(Question, question_id)
        if question is None or question.exam_id != attempt.exam_id:
            raise NotFoundError("Question not found in this exam")

        answer = await self._find_answer(attempt.id, question.id)
        if answer is None:
            answer = StudentAnswer(
                attempt_id=attempt.id,
                question_id=question.id,
                selected_answer=choice,
            )
            authorize(self.actor, answer, Operation.CREATE, parent=attempt)
            try:
                async with self.db.begin_nested():
                    self.db.add(answer)
                return answer
            except IntegrityError:
                # Lost a race with another write for the same question
                answer = await self._find_answer(attempt.id, question.id)
                if answer is None:
                    raise

        authorize(self.actor, answer, Operation.UPDATE, parent=attempt)
        if answer.selected_answer != choice:
            answer.selected_answer = choice
            await self.db.flush()
        return answer

    # ========================================================================
    # Submit
    # ========================================================================

    async def submit(self, attempt_id: uuid.UUID) -> ExamAttempt:
        """
        Grade and close an attempt.

        Raises:
            AttemptClosedError: If the attempt was already submitted
        """
        attempt = await self._get_attempt_for_update(attempt_id)
        if not attempt.is_open:
            raise AttemptClosedError()

        result = await self._finalize(attempt)
        logger.info(
            "Attempt %s submitted: score=%s/%s (%.1f%%)",
            attempt.id, result.score, attempt.total_marks, result.percentage,
        )
        return attempt

    async def expire_overdue(self) -> int:
        """
        Submit every open attempt whose deadline has passed.

        Covers students who never came back to finish. Admin only.
        """
        if not self.actor.is_admin:
            raise PermissionDeniedError()

        result = await self.db.execute(
            select(ExamAttempt)
            .where(ExamAttempt.status == AttemptStatus.IN_PROGRESS)
            .options(selectinload(ExamAttempt.exam))
            .with_for_update()
        )
        expired = 0
        for attempt in result.scalars().all():
            if self._is_past_deadline(attempt, attempt.exam):
                await self._finalize(attempt)
                expired += 1

        if expired:
            logger.info("Expired %d overdue attempts", expired)
        return expired

    # ========================================================================
    # Reads
    # ========================================================================

    async def get_attempt(self, attempt_id: uuid.UUID) -> ExamAttempt:
        """Load an attempt with its exam and answers."""
        result = await self.db.execute(
            select(ExamAttempt)
            .where(ExamAttempt.id == attempt_id)
            .options(
                selectinload(ExamAttempt.exam),
                selectinload(ExamAttempt.answers),
            )
        )
        attempt = result.scalar_one_or_none()
        if attempt is None or not can_access(self.actor, attempt, Operation.READ):
            raise NotFoundError("Attempt not found")
        return attempt

    async def list_my_attempts(self, status: AttemptStatus | None = None) -> list[ExamAttempt]:
        """The caller's attempts, newest first. Completed history is ordered by completion time."""
        query = (
            select(ExamAttempt)
            .where(ExamAttempt.student_id == self.actor.id)
            .options(selectinload(ExamAttempt.exam))
        )
        if status is not None:
            query = query.where(ExamAttempt.status == status)
        if status == AttemptStatus.COMPLETED:
            query = query.order_by(ExamAttempt.completed_at.desc())
        else:
            query = query.order_by(ExamAttempt.started_at.desc())
        result = await self.db.execute(query)
        return [
            a for a in result.scalars().all()
            if can_access(self.actor, a, Operation.READ)
        ]

    async def list_exam_attempts(self, exam_id: uuid.UUID) -> list[ExamAttempt]:
        """All attempts at one exam, for grading review."""
        result = await self.db.execute(
            select(ExamAttempt)
            .where(ExamAttempt.exam_id == exam_id)
            .options(selectinload(ExamAttempt.exam))
            .order_by(ExamAttempt.started_at.desc())
        )
        return [
            a for a in result.scalars().all()
            if can_access(self.actor, a, Operation.READ)
        ]

    def deadline_of(self, attempt: ExamAttempt, exam: Exam) -> datetime:
        return attempt_deadline(attempt.started_at, exam.duration_minutes)

    # ========================================================================
    # Internals
    # ========================================================================

    async def _finalize(self, attempt: ExamAttempt) -> ScoreResult:
        """
        Single scoring pass: correctness flags, score and status are written
        in one flush so they commit or roll back together.
        """
        questions = {q.id: q for q in await self._exam_questions(attempt.exam_id)}
        answers = await self._attempt_answers(attempt.id)

        result = score_answers(answers, questions, attempt.total_marks)
        for answer in answers:
            answer.is_correct = result.graded[answer.question_id]

        attempt.score = result.score
        attempt.percentage = result.percentage
        attempt.status = AttemptStatus.COMPLETED
        attempt.completed_at = self.clock()
        await self.db.flush()
        return result

    async def _get_attempt_for_update(self, attempt_id: uuid.UUID) -> ExamAttempt:
        result = await self.db.execute(
            select(ExamAttempt)
            .where(ExamAttempt.id == attempt_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        attempt = result.scalar_one_or_none()
        if attempt is None or not can_access(self.actor, attempt, Operation.READ):
            raise NotFoundError("Attempt not found")
        authorize(self.actor, attempt, Operation.UPDATE)
        return attempt

    async def _find_open_attempt(self, exam_id: uuid.UUID) -> ExamAttempt | None:
        result = await self.db.execute(
            select(ExamAttempt).where(
                ExamAttempt.exam_id == exam_id,
                ExamAttempt.student_id == self.actor.id,
                ExamAttempt.status == AttemptStatus.IN_PROGRESS,
            )
        )
        return result.scalars().first()

    async def _find_answer(
        self, attempt_id: uuid.UUID, question_id: uuid.UUID
    ) -> StudentAnswer | None:
        result = await self.db.execute(
            select(StudentAnswer).where(
                StudentAnswer.attempt_id == attempt_id,
                StudentAnswer.question_id == question_id,
            )
        )
        return result.scalar_one_or_none()

    async def _exam_questions(self, exam_id: uuid.UUID) -> list[Question]:
        result = await self.db.execute(
            select(Question)
            .where(Question.exam_id == exam_id)
            .order_by(Question.order_number, Question.created_at, Question.id)
        )
        return list(result.scalars().all())

    async def _attempt_answers(self, attempt_id: uuid.UUID) -> list[StudentAnswer]:
        result = await self.db.execute(
            select(StudentAnswer).where(StudentAnswer.attempt_id == attempt_id)
        )
        return list(result.scalars().all())

    def _is_past_deadline(self, attempt: ExamAttempt, exam: Exam) -> bool:
        return self.clock() > self.deadline_of(attempt, exam) + self.grace

    @staticmethod
    def _parse_choice(selected_answer: str) -> str:
        try:
            return AnswerOption(str(selected_answer).strip().upper()).value
        except ValueError:
            raise ValidationError("Selected answer must be one of A, B, C or D") from None
