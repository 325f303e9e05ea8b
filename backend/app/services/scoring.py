"""
Exam Portal - Scoring Engine
Pure functions for grading answers and for attempt timing
"""
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Protocol


class GradableAnswer(Protocol):
    question_id: uuid.UUID
    selected_answer: str


class AnswerKey(Protocol):
    correct_answer: str
    marks: int


@dataclass
class ScoreResult:
    """Outcome of grading one attempt."""
    score: int
    percentage: float
    correct_count: int
    graded: dict[uuid.UUID, bool] = field(default_factory=dict)


def grade_answer(selected_answer: str, correct_answer: str) -> bool:
    return str(selected_answer).upper() == str(correct_answer).upper()


def compute_percentage(score: int, total_marks: int) -> float:
    """Score as a percentage of total marks, 0 when the exam carries no marks."""
    if total_marks <= 0:
        return 0.0
    return min(100.0, max(0.0, score / total_marks * 100))


def score_answers(
    answers: Iterable[GradableAnswer],
    questions: Mapping[uuid.UUID, AnswerKey],
    total_marks: int,
) -> ScoreResult:
    """
    Grade every answer against its question's key.

    Answers whose question is missing from `questions` count as incorrect.
    """
    score = 0
    correct_count = 0
    graded: dict[uuid.UUID, bool] = {}

    for answer in answers:
        question = questions.get(answer.question_id)
        is_correct = question is not None and grade_answer(
            answer.selected_answer, question.correct_answer
        )
        graded[answer.question_id] = is_correct
        if is_correct:
            score += question.marks
            correct_count += 1

    return ScoreResult(
        score=score,
        percentage=compute_percentage(score, total_marks),
        correct_count=correct_count,
        graded=graded,
    )


def is_passed(score: int | None, passing_marks: int) -> bool | None:
    """Pass/fail is derived on read and never stored."""
    if score is None:
        return None
    return score >= passing_marks


# ============================================================================
# Timing
# ============================================================================

def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def attempt_deadline(started_at: datetime, duration_minutes: int) -> datetime:
    return as_utc(started_at) + timedelta(minutes=duration_minutes)


def remaining_seconds(started_at: datetime, duration_minutes: int, now: datetime) -> int:
    """Whole seconds left before the deadline, clamped to zero."""
    left = (attempt_deadline(started_at, duration_minutes) - as_utc(now)).total_seconds()
    return max(0, int(left))
