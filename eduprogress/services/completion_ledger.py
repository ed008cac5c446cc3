"""
Completion Ledger Service

Owns question-completion rows and the pending / inProgress / completed
state machine.

Concurrency:
The "reject if already completed" rule is a read-modify-write. It is
never done as a bare read followed by a write. Instead:
1. Conditional UPDATE ... WHERE status IN (states that may move to the target)
2. If nothing matched and no row exists, INSERT inside a savepoint
3. If the INSERT hits the unique constraint, a concurrent writer created
   the row first; retry step 1 against it
4. Still nothing matched → the row is terminal → AlreadyCompletedError
   (any other disallowed move → InvalidStateError)

At most one writer can move a row from non-terminal to completed, so the
cascade is never double-triggered from inconsistent intermediate reads.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union, Dict, Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.config.feature_flags import FeatureFlags
from eduprogress.errors import AlreadyCompletedError, BadRequestError, ErrorCode, InvalidStateError
from eduprogress.orm.question import Question
from eduprogress.orm.question_completion import QuestionCompletion
from eduprogress.services.cascade_evaluator import cascade_for_question
from eduprogress.services.lookups import require_student, require_question
from eduprogress.state_machines.completion_status import (
    CompletionStatus,
    InvalidStatusError,
    parse_status,
    sources_for,
)

logger = logging.getLogger(__name__)


@dataclass
class StatusChange:
    """Outcome of a status-changing request."""
    record: QuestionCompletion
    assignment_auto_completed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.to_dict()
        data["assignment_auto_completed"] = self.assignment_auto_completed
        return data


@dataclass
class QuestionStatus:
    """Read view of one (student, question) pair."""
    student_id: int
    question_id: int
    status: Optional[CompletionStatus]

    @property
    def is_completed(self) -> bool:
        return self.status == CompletionStatus.COMPLETED

    @property
    def can_submit(self) -> bool:
        return self.status != CompletionStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "student_id": self.student_id,
            "question_id": self.question_id,
            "status": self.status.value if self.status else None,
            "is_completed": self.is_completed,
            "can_submit": self.can_submit,
        }


async def _load_record(
    db: AsyncSession,
    student_id: int,
    question_id: int
) -> Optional[QuestionCompletion]:
    result = await db.execute(
        select(QuestionCompletion)
        .where(
            QuestionCompletion.student_id == student_id,
            QuestionCompletion.question_id == question_id
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _conditional_update(
    db: AsyncSession,
    student_id: int,
    question_id: int,
    target: CompletionStatus
) -> Optional[QuestionCompletion]:
    """Overwrite a non-terminal row. Returns None if nothing matched."""
    result = await db.execute(
        update(QuestionCompletion)
        .where(
            QuestionCompletion.student_id == student_id,
            QuestionCompletion.question_id == question_id,
            QuestionCompletion.status.in_(list(sources_for(target)))
        )
        .values(status=target, updated_at=datetime.utcnow())
    )
    if result.rowcount == 0:
        return None
    return await _load_record(db, student_id, question_id)


async def _insert_first(
    db: AsyncSession,
    student_id: int,
    question_id: int,
    target: CompletionStatus
) -> Optional[QuestionCompletion]:
    """Create the row. Returns None if a concurrent writer created it first."""
    record = QuestionCompletion(
        student_id=student_id,
        question_id=question_id,
        status=target
    )
    try:
        async with db.begin_nested():
            db.add(record)
    except IntegrityError:
        logger.info(
            f"Concurrent first write on question completion: "
            f"student={student_id}, question={question_id}"
        )
        return None
    return record


async def _write_status(
    db: AsyncSession,
    student_id: int,
    question_id: int,
    target: CompletionStatus
) -> QuestionCompletion:
    record = await _conditional_update(db, student_id, question_id, target)
    if record is not None:
        return record

    existing = await _load_record(db, student_id, question_id)
    if existing is None:
        record = await _insert_first(db, student_id, question_id, target)
        if record is not None:
            return record
        record = await _conditional_update(db, student_id, question_id, target)
        if record is not None:
            return record
        # Lost the insert race; the winner's row exists and is never deleted
        existing = await _load_record(db, student_id, question_id)

    if existing.status.is_terminal:
        logger.warning(
            f"Rejected status change on completed question: "
            f"student={student_id}, question={question_id}, requested={target.value}"
        )
        raise AlreadyCompletedError(student_id, question_id, target.value)

    raise InvalidStateError(
        f"Cannot move question from '{existing.status.value}' to '{target.value}'",
        details={
            "student_id": student_id,
            "question_id": question_id,
            "current_status": existing.status.value,
            "requested_status": target.value,
        }
    )


def _coerce_status(value: Union[str, CompletionStatus]) -> CompletionStatus:
    try:
        return parse_status(value)
    except InvalidStatusError as e:
        raise BadRequestError(
            str(e),
            code=ErrorCode.INVALID_STATUS,
            details={"field": "status", "value": e.value}
        ) from e


async def set_status(
    db: AsyncSession,
    student_id: int,
    question_id: int,
    new_status: Union[str, CompletionStatus]
) -> StatusChange:
    """
    Set a student's status on a question.

    Marking a question completed triggers the lecture cascade for every
    assignment that references it. Cascade failures never fail this call.

    Raises:
        BadRequestError: unknown status value
        NotFoundError: unknown student or question
        AlreadyCompletedError: the pair is already completed
        InvalidStateError: move not allowed from the current status
    """
    target = _coerce_status(new_status)

    await require_student(db, student_id)
    await require_question(db, question_id)

    record = await _write_status(db, student_id, question_id, target)
    logger.info(
        f"Question status set: student={student_id}, question={question_id}, "
        f"status={target.value}"
    )

    fired = False
    if target is CompletionStatus.COMPLETED and FeatureFlags.FEATURE_CASCADE_ON_COMPLETION:
        fired = await cascade_for_question(db, student_id, question_id)

    return StatusChange(record=record, assignment_auto_completed=fired)


async def mark_in_progress(
    db: AsyncSession,
    student_id: int,
    question_id: int
) -> StatusChange:
    """Restricted entry point: only ever moves a pair to inProgress."""
    return await set_status(db, student_id, question_id, CompletionStatus.IN_PROGRESS)


async def get_status(
    db: AsyncSession,
    student_id: int,
    question_id: int
) -> QuestionStatus:
    await require_student(db, student_id)
    await require_question(db, question_id)

    status = await db.scalar(
        select(QuestionCompletion.status).where(
            QuestionCompletion.student_id == student_id,
            QuestionCompletion.question_id == question_id
        )
    )
    return QuestionStatus(student_id=student_id, question_id=question_id, status=status)


async def list_student_question_completions(
    db: AsyncSession,
    student_id: int
) -> Dict[str, Any]:
    """Every ledger row of a student, newest first, with status counts."""
    await require_student(db, student_id)

    result = await db.execute(
        select(QuestionCompletion, Question.question_type)
        .join(Question, Question.id == QuestionCompletion.question_id)
        .where(QuestionCompletion.student_id == student_id)
        .order_by(QuestionCompletion.updated_at.desc(), QuestionCompletion.id.desc())
    )

    questions = []
    for record, question_type in result.all():
        questions.append({
            "id": record.id,
            "question_id": record.question_id,
            "question_type": question_type.value,
            "status": record.status.value,
            "completed_at": record.updated_at.isoformat() if record.updated_at else None,
        })

    return {
        "student_id": student_id,
        "stats": status_stats(q["status"] for q in questions),
        "questions": questions,
    }


def status_stats(statuses) -> Dict[str, int]:
    statuses = list(statuses)
    return {
        "total": len(statuses),
        "completed": statuses.count(CompletionStatus.COMPLETED.value),
        "in_progress": statuses.count(CompletionStatus.IN_PROGRESS.value),
        "pending": statuses.count(CompletionStatus.PENDING.value),
    }
