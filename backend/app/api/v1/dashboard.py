"""
Exam Portal - Dashboard API
Summary counters for the student dashboard and the admin panel
"""
from fastapi import APIRouter

from app.api.deps import AdminActor, DbSession, StudentActor
from app.schemas.dashboard import AdminDashboard, StudentDashboard
from app.services.analytics import AnalyticsService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/student", response_model=StudentDashboard)
async def get_student_dashboard(actor: StudentActor, db: DbSession):
    return await AnalyticsService(db).get_student_dashboard(actor.id)


@router.get("/admin", response_model=AdminDashboard)
async def get_admin_dashboard(actor: AdminActor, db: DbSession):
    return await AnalyticsService(db).get_admin_dashboard()
