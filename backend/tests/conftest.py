"""
Exam Portal - Test Configuration
Pytest fixtures and configuration for testing
"""
import uuid
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  (registers every table on Base.metadata)
from app.core.database import Base, get_db
from app.core.security import create_access_token
from app.main import app
from app.models.exam import Exam, Question
from app.models.curriculum import Subject
from app.models.user import Profile, UserRole
from app.services.roles import Actor


# Test database URL (in-memory SQLite shared through a single connection)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def _enable_sqlite_features(engine) -> None:
    """Foreign keys, plus explicit BEGIN so SAVEPOINTs behave."""

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest_asyncio.fixture(scope="function")
async def session_maker() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """A fresh database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _enable_sqlite_features(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for service-level tests."""
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client whose requests each get their own session, as in production."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================================
# Identities and seed data
# ============================================================================

def auth_headers(identity_id: uuid.UUID, **claims: Any) -> dict[str, str]:
    """Bearer header for a token minted the way the identity provider does."""
    token = create_access_token(subject=str(identity_id), additional_claims=claims or None)
    return {"Authorization": f"Bearer {token}"}


async def create_profile(
    session: AsyncSession,
    role: UserRole = UserRole.STUDENT,
    email: str | None = None,
    full_name: str = "Test User",
) -> Profile:
    profile_id = uuid.uuid4()
    profile = Profile(
        id=profile_id,
        full_name=full_name,
        email=email or f"user-{profile_id.hex[:8]}@neu.edu.ph",
        role=role,
    )
    session.add(profile)
    await session.commit()
    return profile


async def create_exam_with_questions(
    session: AsyncSession,
    created_by: uuid.UUID | None = None,
    questions: list[tuple[str, int]] | None = None,
    duration_minutes: int = 30,
    passing_marks: int = 5,
    is_active: bool = True,
) -> Exam:
    """An exam under a new subject; `questions` is a list of (correct_answer, marks)."""
    subject = Subject(name="Physics", description="Mechanics", is_active=True, created_by=created_by)
    session.add(subject)
    await session.flush()

    questions = questions if questions is not None else [("B", 10)]
    exam = Exam(
        subject_id=subject.id,
        title="Kinematics Quiz",
        duration_minutes=duration_minutes,
        passing_marks=passing_marks,
        total_marks=sum(marks for _, marks in questions),
        is_active=is_active,
        created_by=created_by,
    )
    session.add(exam)
    await session.flush()

    for order, (correct, marks) in enumerate(questions, 1):
        session.add(Question(
            exam_id=exam.id,
            question_text=f"Question {order}?",
            option_a="first",
            option_b="second",
            option_c="third",
            option_d="fourth",
            correct_answer=correct,
            marks=marks,
            order_number=order,
        ))
    await session.commit()
    return exam


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> Profile:
    return await create_profile(db_session, UserRole.ADMIN, full_name="Ada Admin")


@pytest_asyncio.fixture
async def student(db_session: AsyncSession) -> Profile:
    return await create_profile(db_session, UserRole.STUDENT, full_name="Sam Student")


@pytest_asyncio.fixture
async def other_student(db_session: AsyncSession) -> Profile:
    return await create_profile(db_session, UserRole.STUDENT, full_name="Olive Other")


@pytest.fixture
def admin_actor(admin: Profile) -> Actor:
    return Actor(id=admin.id, role=UserRole.ADMIN)


@pytest.fixture
def student_actor(student: Profile) -> Actor:
    return Actor(id=student.id, role=UserRole.STUDENT)


@pytest.fixture
def other_student_actor(other_student: Profile) -> Actor:
    return Actor(id=other_student.id, role=UserRole.STUDENT)


@pytest.fixture
def sample_subject_data() -> dict[str, Any]:
    """Sample subject payload."""
    return {
        "name": "Mathematics",
        "description": "Algebra and geometry",
        "is_active": True,
    }


@pytest.fixture
def sample_question_data() -> dict[str, Any]:
    """Sample question payload."""
    return {
        "question_text": "What is 2 + 2?",
        "option_a": "3",
        "option_b": "4",
        "option_c": "5",
        "option_d": "22",
        "correct_answer": "B",
        "marks": 2,
    }


@pytest.fixture
def make_exam(db_session: AsyncSession):
    """Factory fixture around `create_exam_with_questions` bound to the test session."""

    async def _make_exam(**kwargs: Any) -> Exam:
        return await create_exam_with_questions(db_session, **kwargs)

    return _make_exam


@pytest.fixture
def headers_for():
    """Factory fixture around `auth_headers`."""
    return auth_headers


@pytest.fixture
def make_profile(db_session: AsyncSession):
    """Factory fixture around `create_profile` bound to the test session."""

    async def _make_profile(*args: Any, **kwargs: Any) -> Profile:
        return await create_profile(db_session, *args, **kwargs)

    return _make_profile
