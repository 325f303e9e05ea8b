"""
Exam Portal - Exam Attempt Service Tests
Start/resume, answering, submission and the server-side deadline
"""
from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.core.database import utcnow
from app.models.attempt import AttemptStatus, ExamAttempt, StudentAnswer
from app.services.attempts import ExamAttemptService
from app.services.scoring import as_utc
from app.services.errors import (
    AttemptClosedError,
    AttemptExpiredError,
    ExamNotAvailableError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


def fixed_clock(moment):
    return lambda: moment


# ============================================================================
# Start / resume
# ============================================================================

@pytest.mark.asyncio
async def test_start_creates_attempt_with_marks_snapshot(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id, questions=[("B", 4), ("C", 6)])

    session = await ExamAttemptService(db_session, student_actor).start_or_resume(exam.id)

    assert session.resumed is False
    assert session.attempt.status == AttemptStatus.IN_PROGRESS
    assert session.attempt.student_id == student_actor.id
    assert session.attempt.total_marks == 10
    assert [q.order_number for q in session.questions] == [1, 2]
    assert session.answers == {}
    assert session.remaining_seconds == 30 * 60


@pytest.mark.asyncio
async def test_start_twice_resumes_the_same_attempt(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id)
    now = utcnow()

    first = await ExamAttemptService(db_session, student_actor, clock=fixed_clock(now)).start_or_resume(exam.id)
    await db_session.commit()
    later = ExamAttemptService(db_session, student_actor, clock=fixed_clock(now + timedelta(minutes=5)))
    second = await later.start_or_resume(exam.id)

    assert second.resumed is True
    assert second.attempt.id == first.attempt.id
    assert second.remaining_seconds == 25 * 60


@pytest.mark.asyncio
async def test_resume_keeps_recorded_answers(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id, questions=[("A", 1), ("B", 1)])
    service = ExamAttemptService(db_session, student_actor)

    session = await service.start_or_resume(exam.id)
    first_question = session.questions[0]
    await service.record_answer(session.attempt.id, first_question.id, "d")
    await db_session.commit()

    resumed = await service.start_or_resume(exam.id)
    assert resumed.answers == {first_question.id: "D"}


@pytest.mark.asyncio
async def test_resume_after_deadline_submits_automatically(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id, questions=[("B", 10)])
    start = utcnow()

    service = ExamAttemptService(db_session, student_actor, clock=fixed_clock(start))
    session = await service.start_or_resume(exam.id)
    await service.record_answer(session.attempt.id, session.questions[0].id, "B")
    await db_session.commit()

    # Student walks away and comes back 40 minutes into a 30 minute exam
    late = ExamAttemptService(db_session, student_actor, clock=fixed_clock(start + timedelta(minutes=40)))
    resumed = await late.start_or_resume(exam.id)

    assert resumed.resumed is True
    assert resumed.remaining_seconds == 0
    assert resumed.attempt.id == session.attempt.id
    assert resumed.attempt.status == AttemptStatus.COMPLETED
    assert resumed.attempt.score == 10
    assert resumed.attempt.percentage == 100.0


@pytest.mark.asyncio
async def test_new_attempt_allowed_after_completion(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id)
    service = ExamAttemptService(db_session, student_actor)

    first = await service.start_or_resume(exam.id)
    await service.submit(first.attempt.id)
    await db_session.commit()

    second = await service.start_or_resume(exam.id)
    assert second.resumed is False
    assert second.attempt.id != first.attempt.id


@pytest.mark.asyncio
async def test_cannot_start_inactive_exam(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id, is_active=False)

    with pytest.raises(ExamNotAvailableError):
        await ExamAttemptService(db_session, student_actor).start_or_resume(exam.id)


@pytest.mark.asyncio
async def test_cannot_start_exam_without_questions(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id, questions=[])

    with pytest.raises(ExamNotAvailableError):
        await ExamAttemptService(db_session, student_actor).start_or_resume(exam.id)


@pytest.mark.asyncio
async def test_admin_cannot_start_attempt(db_session, make_exam, admin_actor, admin):
    exam = await make_exam(created_by=admin.id)

    with pytest.raises(PermissionDeniedError):
        await ExamAttemptService(db_session, admin_actor).start_or_resume(exam.id)


@pytest.mark.asyncio
async def test_one_open_attempt_per_student_and_exam(db_session, make_exam, student, admin):
    exam = await make_exam(created_by=admin.id)

    db_session.add(ExamAttempt(exam_id=exam.id, student_id=student.id, total_marks=10,
                               status=AttemptStatus.IN_PROGRESS))
    await db_session.flush()
    db_session.add(ExamAttempt(exam_id=exam.id, student_id=student.id, total_marks=10,
                               status=AttemptStatus.IN_PROGRESS))
    with pytest.raises(IntegrityError):
        await db_session.flush()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_concurrent_start_resumes_the_winning_attempt(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id)
    winner = await ExamAttemptService(db_session, student_actor).start_or_resume(exam.id)
    await db_session.commit()

    # The loser looked for an open attempt before the winner committed
    loser = ExamAttemptService(db_session, student_actor)
    lookup = loser._find_open_attempt
    calls = []

    async def find_open_attempt(exam_id):
        calls.append(exam_id)
        if len(calls) == 1:
            return None
        return await lookup(exam_id)

    loser._find_open_attempt = find_open_attempt

    session = await loser.start_or_resume(exam.id)

    assert session.resumed is True
    assert session.attempt.id == winner.attempt.id
    result = await db_session.execute(select(ExamAttempt).where(ExamAttempt.exam_id == exam.id))
    assert len(result.scalars().all()) == 1


@pytest.mark.asyncio
async def test_completed_attempts_do_not_block_new_ones(db_session, make_exam, student, admin):
    exam = await make_exam(created_by=admin.id)

    for _ in range(2):
        db_session.add(ExamAttempt(exam_id=exam.id, student_id=student.id, total_marks=10,
                                   status=AttemptStatus.COMPLETED, score=0, percentage=0.0))
    db_session.add(ExamAttempt(exam_id=exam.id, student_id=student.id, total_marks=10,
                               status=AttemptStatus.IN_PROGRESS))
    await db_session.commit()

    result = await db_session.execute(select(ExamAttempt).where(ExamAttempt.student_id == student.id))
    assert len(result.scalars().all()) == 3


# ============================================================================
# Answers
# ============================================================================

@pytest.mark.asyncio
async def test_record_answer_upserts(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id, questions=[("A", 1)])
    service = ExamAttemptService(db_session, student_actor)
    session = await service.start_or_resume(exam.id)
    question_id = session.questions[0].id

    first = await service.record_answer(session.attempt.id, question_id, "A")
    second = await service.record_answer(session.attempt.id, question_id, "C")

    assert first.id == second.id
    assert second.selected_answer == "C"
    assert second.is_correct is None

    result = await db_session.execute(
        select(StudentAnswer).where(StudentAnswer.attempt_id == session.attempt.id)
    )
    assert len(result.scalars().all()) == 1


@pytest.mark.asyncio
async def test_record_answer_rejects_invalid_choice(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id)
    service = ExamAttemptService(db_session, student_actor)
    session = await service.start_or_resume(exam.id)

    with pytest.raises(ValidationError):
        await service.record_answer(session.attempt.id, session.questions[0].id, "E")


@pytest.mark.asyncio
async def test_record_answer_rejects_question_from_another_exam(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id)
    other = await make_exam(created_by=admin.id)
    service = ExamAttemptService(db_session, student_actor)
    session = await service.start_or_resume(exam.id)
    other_session = await service.start_or_resume(other.id)

    with pytest.raises(NotFoundError):
        await service.record_answer(session.attempt.id, other_session.questions[0].id, "A")


@pytest.mark.asyncio
async def test_other_student_cannot_answer(db_session, make_exam, student_actor, other_student_actor, admin):
    exam = await make_exam(created_by=admin.id)
    session = await ExamAttemptService(db_session, student_actor).start_or_resume(exam.id)

    intruder = ExamAttemptService(db_session, other_student_actor)
    with pytest.raises(NotFoundError):
        await intruder.record_answer(session.attempt.id, session.questions[0].id, "B")
    with pytest.raises(NotFoundError):
        await intruder.submit(session.attempt.id)
    with pytest.raises(NotFoundError):
        await intruder.get_attempt(session.attempt.id)


@pytest.mark.asyncio
async def test_answer_rejected_after_completion(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id)
    service = ExamAttemptService(db_session, student_actor)
    session = await service.start_or_resume(exam.id)
    await service.submit(session.attempt.id)

    with pytest.raises(AttemptClosedError):
        await service.record_answer(session.attempt.id, session.questions[0].id, "B")


@pytest.mark.asyncio
async def test_answer_within_grace_period_is_accepted(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id)
    start = utcnow()
    session = await ExamAttemptService(
        db_session, student_actor, clock=fixed_clock(start)
    ).start_or_resume(exam.id)

    just_late = ExamAttemptService(
        db_session, student_actor,
        clock=fixed_clock(start + timedelta(minutes=30, seconds=5)),
        grace_seconds=10,
    )
    answer = await just_late.record_answer(session.attempt.id, session.questions[0].id, "B")
    assert answer.selected_answer == "B"


@pytest.mark.asyncio
async def test_answer_after_deadline_expires_the_attempt(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id, questions=[("B", 10)])
    start = utcnow()
    service = ExamAttemptService(db_session, student_actor, clock=fixed_clock(start))
    session = await service.start_or_resume(exam.id)
    await service.record_answer(session.attempt.id, session.questions[0].id, "B")
    await db_session.commit()

    late = ExamAttemptService(
        db_session, student_actor,
        clock=fixed_clock(start + timedelta(minutes=31)),
        grace_seconds=10,
    )
    with pytest.raises(AttemptExpiredError):
        await late.record_answer(session.attempt.id, session.questions[0].id, "A")

    await db_session.rollback()
    attempt = await db_session.get(ExamAttempt, session.attempt.id, populate_existing=True)
    assert attempt.status == AttemptStatus.COMPLETED
    # The answer saved in time is graded; the late change is not applied
    assert attempt.score == 10


# ============================================================================
# Submit
# ============================================================================

@pytest.mark.asyncio
async def test_submit_grades_attempt(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id, questions=[("A", 5), ("C", 5)], passing_marks=5)
    service = ExamAttemptService(db_session, student_actor)
    session = await service.start_or_resume(exam.id)
    q1, q2 = session.questions
    await service.record_answer(session.attempt.id, q1.id, "A")
    await service.record_answer(session.attempt.id, q2.id, "B")

    attempt = await service.submit(session.attempt.id)

    assert attempt.status == AttemptStatus.COMPLETED
    assert attempt.completed_at is not None
    assert attempt.score == 5
    assert attempt.percentage == 50.0

    detail = await service.get_attempt(attempt.id)
    flags = {a.question_id: a.is_correct for a in detail.answers}
    assert flags == {q1.id: True, q2.id: False}


@pytest.mark.asyncio
async def test_submit_with_no_answers_scores_zero(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id)
    service = ExamAttemptService(db_session, student_actor)
    session = await service.start_or_resume(exam.id)

    attempt = await service.submit(session.attempt.id)
    assert attempt.score == 0
    assert attempt.percentage == 0.0


@pytest.mark.asyncio
async def test_second_submit_is_rejected_and_score_unchanged(db_session, make_exam, student_actor, admin):
    exam = await make_exam(created_by=admin.id, questions=[("B", 10)])
    service = ExamAttemptService(db_session, student_actor)
    session = await service.start_or_resume(exam.id)
    await service.record_answer(session.attempt.id, session.questions[0].id, "B")
    attempt = await service.submit(session.attempt.id)
    completed_at = attempt.completed_at

    with pytest.raises(AttemptClosedError):
        await service.submit(session.attempt.id)

    attempt = await service.get_attempt(session.attempt.id)
    assert attempt.score == 10
    assert as_utc(attempt.completed_at) == as_utc(completed_at)


# ============================================================================
# Sweeping and reads
# ============================================================================

@pytest.mark.asyncio
async def test_expire_overdue_finalizes_abandoned_attempts(
    db_session, make_exam, student_actor, other_student_actor, admin, admin_actor
):
    exam = await make_exam(created_by=admin.id, duration_minutes=30)
    start = utcnow()
    await ExamAttemptService(db_session, student_actor, clock=fixed_clock(start)).start_or_resume(exam.id)
    fresh = await ExamAttemptService(
        db_session, other_student_actor, clock=fixed_clock(start + timedelta(minutes=25))
    ).start_or_resume(exam.id)
    await db_session.commit()

    sweeper = ExamAttemptService(
        db_session, admin_actor, clock=fixed_clock(start + timedelta(minutes=35))
    )
    assert await sweeper.expire_overdue() == 1

    fresh_attempt = await db_session.get(ExamAttempt, fresh.attempt.id)
    assert fresh_attempt.status == AttemptStatus.IN_PROGRESS


@pytest.mark.asyncio
async def test_expire_overdue_is_admin_only(db_session, student_actor):
    with pytest.raises(PermissionDeniedError):
        await ExamAttemptService(db_session, student_actor).expire_overdue()


@pytest.mark.asyncio
async def test_list_my_attempts_filters_by_status(db_session, make_exam, student_actor, admin):
    first_exam = await make_exam(created_by=admin.id)
    second_exam = await make_exam(created_by=admin.id)
    service = ExamAttemptService(db_session, student_actor)

    done = await service.start_or_resume(first_exam.id)
    await service.submit(done.attempt.id)
    await service.start_or_resume(second_exam.id)

    assert len(await service.list_my_attempts()) == 2
    completed = await service.list_my_attempts(status=AttemptStatus.COMPLETED)
    assert [a.id for a in completed] == [done.attempt.id]


@pytest.mark.asyncio
async def test_completed_history_is_ordered_by_completion(db_session, make_exam, student_actor, admin):
    first_exam = await make_exam(created_by=admin.id)
    second_exam = await make_exam(created_by=admin.id)
    start = utcnow()

    def at(minutes):
        return ExamAttemptService(db_session, student_actor, clock=fixed_clock(start + timedelta(minutes=minutes)))

    earlier = await at(0).start_or_resume(first_exam.id)
    later = await at(1).start_or_resume(second_exam.id)
    await at(2).submit(later.attempt.id)
    await at(3).submit(earlier.attempt.id)

    service = at(4)
    by_start = await service.list_my_attempts()
    assert [a.id for a in by_start] == [later.attempt.id, earlier.attempt.id]
    by_completion = await service.list_my_attempts(status=AttemptStatus.COMPLETED)
    assert [a.id for a in by_completion] == [earlier.attempt.id, later.attempt.id]


@pytest.mark.asyncio
async def test_list_exam_attempts_visible_to_admin_only(
    db_session, make_exam, student_actor, other_student_actor, admin, admin_actor
):
    exam = await make_exam(created_by=admin.id)
    await ExamAttemptService(db_session, student_actor).start_or_resume(exam.id)
    await ExamAttemptService(db_session, other_student_actor).start_or_resume(exam.id)

    assert len(await ExamAttemptService(db_session, admin_actor).list_exam_attempts(exam.id)) == 2
    own = await ExamAttemptService(db_session, student_actor).list_exam_attempts(exam.id)
    assert [a.student_id for a in own] == [student_actor.id]
