"""Exam Portal - API v1 Router."""
from fastapi import APIRouter

from app.api.v1.profiles import router as profiles_router
from app.api.v1.subjects import router as subjects_router
from app.api.v1.exams import router as exams_router
from app.api.v1.questions import router as questions_router
from app.api.v1.attempts import router as attempts_router
from app.api.v1.dashboard import router as dashboard_router

api_router = APIRouter()

api_router.include_router(profiles_router)
api_router.include_router(subjects_router)
api_router.include_router(exams_router)
api_router.include_router(questions_router)
api_router.include_router(attempts_router)
api_router.include_router(dashboard_router)
