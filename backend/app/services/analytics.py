"""
Exam Portal - Analytics Service
Dashboard counters for students and admins
"""
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.attempt import AttemptStatus, ExamAttempt
from app.models.curriculum import Subject
from app.models.exam import Exam
from app.models.user import Profile
from app.schemas.dashboard import AdminDashboard, StudentDashboard


class AnalyticsService:
    """Service for aggregating dashboard statistics."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_student_dashboard(self, student_id: uuid.UUID) -> StudentDashboard:
        """Counts over the student's completed attempts and the open catalog."""
        available_result = await self.db.execute(
            select(func.count(Exam.id)).where(Exam.is_active.is_(True))
        )
        available_exams = available_result.scalar() or 0

        attempts_result = await self.db.execute(
            select(
                func.count(ExamAttempt.id),
                func.avg(ExamAttempt.score),
                func.max(ExamAttempt.score),
                func.avg(ExamAttempt.percentage),
            ).where(
                ExamAttempt.student_id == student_id,
                ExamAttempt.status == AttemptStatus.COMPLETED,
            )
        )
        completed, avg_score, best_score, avg_percentage = attempts_result.one()

        return StudentDashboard(
            available_exams=available_exams,
            completed_exams=completed or 0,
            average_score=round(float(avg_score or 0)),
            best_score=int(best_score or 0),
            average_percentage=round(float(avg_percentage or 0), 1),
        )

    async def get_admin_dashboard(self) -> AdminDashboard:
        users = await self.db.execute(select(func.count(Profile.id)))
        subjects = await self.db.execute(select(func.count(Subject.id)))
        exams = await self.db.execute(
            select(
                func.count(Exam.id),
                func.count(Exam.id).filter(Exam.is_active.is_(True)),
            )
        )
        total_exams, active_exams = exams.one()

        return AdminDashboard(
            total_users=users.scalar() or 0,
            total_subjects=subjects.scalar() or 0,
            total_exams=total_exams or 0,
            active_exams=active_exams or 0,
        )
