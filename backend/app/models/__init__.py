"""Exam Portal - Models initialization."""
from app.models.user import Profile, UserRole
from app.models.curriculum import Subject
from app.models.exam import AnswerOption, Exam, Question
from app.models.attempt import AttemptStatus, ExamAttempt, StudentAnswer


__all__ = [
    # Profile models
    "Profile",
    "UserRole",
    # Curriculum models
    "Subject",
    # Exam models
    "AnswerOption",
    "Exam",
    "Question",
    # Attempt models
    "AttemptStatus",
    "ExamAttempt",
    "StudentAnswer",
]
