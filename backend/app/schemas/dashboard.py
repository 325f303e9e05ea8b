"""
Exam Portal - Dashboard Schemas
"""
from pydantic import BaseModel


class StudentDashboard(BaseModel):
    """Counters shown on a student's dashboard."""
    available_exams: int
    completed_exams: int
    average_score: int
    best_score: int
    average_percentage: float


class AdminDashboard(BaseModel):
    """Counters shown on the admin panel."""
    total_users: int
    total_subjects: int
    total_exams: int
    active_exams: int
