"""
Exam Portal - Access Policy Engine

Row-level authorization expressed as plain predicates. Each table has a tuple
of rules; a request is allowed when any rule for its table allows it. Every
service entry point calls `authorize` (or `can_access`) before touching a row.

Rules depend only on the Actor produced by the role resolver, never on
anything the client sends about itself.
"""
import logging
from collections.abc import Callable, Collection
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from app.models.attempt import ExamAttempt, StudentAnswer
from app.models.curriculum import Subject
from app.models.exam import Exam, Question
from app.models.user import Profile, UserRole
from app.services.errors import PermissionDeniedError
from app.services.roles import Actor

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """Row operations subject to authorization."""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class PolicyContext:
    """
    Extra facts some rules need.

    parent: the row a child row hangs off (the exam of a question, the
        attempt of an answer)
    fields: column names an update is about to change
    """
    parent: Any = None
    fields: Collection[str] = field(default_factory=tuple)


Rule = Callable[[Actor, Any, Operation, PolicyContext], bool]


# ============================================================================
# Shared rules
# ============================================================================

def admin_manages_all(actor: Actor, row: Any, op: Operation, ctx: PolicyContext) -> bool:
    return actor.is_admin


def admin_reads_all(actor: Actor, row: Any, op: Operation, ctx: PolicyContext) -> bool:
    return actor.is_admin and op == Operation.READ


def member_reads_active(actor: Actor, row: Any, op: Operation, ctx: PolicyContext) -> bool:
    # Any profiled identity may read rows an admin has published
    return actor.role is not None and op == Operation.READ and bool(row.is_active)


# ============================================================================
# Table-specific rules
# ============================================================================

def owner_manages_own_profile(actor: Actor, row: Profile, op: Operation, ctx: PolicyContext) -> bool:
    if row.id != actor.id or op == Operation.DELETE:
        return False
    if op == Operation.CREATE:
        return row.role == UserRole.STUDENT
    # Role changes go through an admin only
    return "role" not in ctx.fields


def member_reads_questions_of_active_exam(
    actor: Actor, row: Question, op: Operation, ctx: PolicyContext
) -> bool:
    exam = ctx.parent
    return (
        actor.role is not None
        and op == Operation.READ
        and exam is not None
        and exam.id == row.exam_id
        and bool(exam.is_active)
    )


def student_manages_own_attempt(
    actor: Actor, row: ExamAttempt, op: Operation, ctx: PolicyContext
) -> bool:
    return (
        actor.is_student
        and op in (Operation.CREATE, Operation.READ, Operation.UPDATE)
        and row.student_id == actor.id
    )


def student_manages_own_answer(
    actor: Actor, row: StudentAnswer, op: Operation, ctx: PolicyContext
) -> bool:
    attempt = ctx.parent
    return (
        actor.is_student
        and op in (Operation.CREATE, Operation.READ, Operation.UPDATE)
        and attempt is not None
        and attempt.id == row.attempt_id
        and attempt.student_id == actor.id
    )


POLICIES: dict[type, tuple[Rule, ...]] = {
    Profile: (admin_manages_all, owner_manages_own_profile),
    Subject: (admin_manages_all, member_reads_active),
    Exam: (admin_manages_all, member_reads_active),
    Question: (admin_manages_all, member_reads_questions_of_active_exam),
    ExamAttempt: (admin_reads_all, student_manages_own_attempt),
    StudentAnswer: (admin_reads_all, student_manages_own_answer),
}


def can_access(
    actor: Actor,
    row: Any,
    op: Operation,
    *,
    parent: Any = None,
    fields: Collection[str] = (),
) -> bool:
    """
    Decide whether `actor` may perform `op` on `row`.

    Tables without registered policies are denied.
    """
    rules = POLICIES.get(type(row), ())
    ctx = PolicyContext(parent=parent, fields=tuple(fields))
    return any(rule(actor, row, op, ctx) for rule in rules)


def authorize(
    actor: Actor,
    row: Any,
    op: Operation,
    *,
    parent: Any = None,
    fields: Collection[str] = (),
) -> None:
    """Raise PermissionDeniedError unless `can_access` allows the operation."""
    if not can_access(actor, row, op, parent=parent, fields=fields):
        logger.info(
            "Denied %s on %s for identity %s (role=%s)",
            op.value,
            type(row).__tablename__,
            actor.id,
            actor.role.value if actor.role else None,
        )
        raise PermissionDeniedError()
