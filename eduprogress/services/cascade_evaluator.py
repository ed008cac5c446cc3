"""
Cascade Evaluator

Derives per-assignment completion from the question-completion ledger.

A lecture is "fully answered" by a student when every distinct question
referenced by the lecture's assignments has a completed ledger row. The
verdict is recomputed from the ledger on every trigger; no running
counter is kept, so assignments added to or removed from a lecture never
cause drift.

Assignment-completion upserts are monotonic:
- absent → insert as completed
- present, not completed → conditional UPDATE to completed
- present, completed → untouched

Evaluations for the same (student, lecture) may run concurrently or out
of order. Each run reads current ledger state and writes only forward, so
duplicate triggers converge without locking.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.config.feature_flags import FeatureFlags
from eduprogress.errors import InconsistentCascadeInputError
from eduprogress.orm.assignment import Assignment
from eduprogress.orm.assignment_completion import AssignmentCompletion
from eduprogress.orm.question import Question
from eduprogress.orm.question_completion import QuestionCompletion
from eduprogress.services.lookups import require_student, require_lecture
from eduprogress.state_machines.completion_status import CompletionStatus, sources_for

logger = logging.getLogger(__name__)


@dataclass
class CascadeOutcome:
    """Result of evaluating one lecture for one student."""
    lecture_id: int
    all_questions_complete: bool
    total_assignments: int = 0
    assignments_written: int = 0

    def to_dict(self):
        return {
            "lecture_id": self.lecture_id,
            "all_questions_complete": self.all_questions_complete,
            "total_assignments": self.total_assignments,
            "assignments_written": self.assignments_written,
        }


async def _upgrade_assignment_completion(
    db: AsyncSession,
    student_id: int,
    assignment_id: int
) -> bool:
    result = await db.execute(
        update(AssignmentCompletion)
        .where(
            AssignmentCompletion.student_id == student_id,
            AssignmentCompletion.assignment_id == assignment_id,
            AssignmentCompletion.status.in_(list(sources_for(CompletionStatus.COMPLETED)))
        )
        .values(status=CompletionStatus.COMPLETED, updated_at=datetime.utcnow())
    )
    return result.rowcount > 0


async def _assignment_completion_exists(
    db: AsyncSession,
    student_id: int,
    assignment_id: int
) -> bool:
    existing_id = await db.scalar(
        select(AssignmentCompletion.id).where(
            AssignmentCompletion.student_id == student_id,
            AssignmentCompletion.assignment_id == assignment_id
        )
    )
    return existing_id is not None


async def upsert_assignment_completion(
    db: AsyncSession,
    student_id: int,
    assignment_id: int
) -> bool:
    """
    Mark an assignment completed for a student without ever downgrading.

    Returns:
        True if a row was inserted or upgraded, False if it was already
        completed.
    """
    if await _upgrade_assignment_completion(db, student_id, assignment_id):
        return True

    if await _assignment_completion_exists(db, student_id, assignment_id):
        # Present and not upgradable: already completed
        return False

    try:
        async with db.begin_nested():
            db.add(AssignmentCompletion(
                student_id=student_id,
                assignment_id=assignment_id,
                status=CompletionStatus.COMPLETED
            ))
    except IntegrityError:
        # Another writer created the row between our read and insert
        logger.info(
            f"Concurrent assignment completion insert: student={student_id}, "
            f"assignment={assignment_id}"
        )
        return await _upgrade_assignment_completion(db, student_id, assignment_id)

    return True


async def evaluate_lecture(
    db: AsyncSession,
    student_id: int,
    lecture_id: int
) -> CascadeOutcome:
    """
    Decide whether the student has answered every question of the lecture
    and, if so, materialize completed assignment-completion rows.

    Raises:
        InconsistentCascadeInputError: an assignment references a
            question that no longer exists
    """
    result = await db.execute(
        select(Assignment).where(Assignment.lecture_id == lecture_id).order_by(Assignment.id)
    )
    assignments = result.scalars().all()

    if not assignments:
        return CascadeOutcome(lecture_id=lecture_id, all_questions_complete=False)

    question_ids = {a.question_id for a in assignments}

    result = await db.execute(select(Question.id).where(Question.id.in_(question_ids)))
    missing = sorted(question_ids - set(result.scalars().all()))
    if missing:
        raise InconsistentCascadeInputError(lecture_id, missing)

    completed_count = await db.scalar(
        select(func.count(func.distinct(QuestionCompletion.question_id))).where(
            QuestionCompletion.student_id == student_id,
            QuestionCompletion.question_id.in_(question_ids),
            QuestionCompletion.status == CompletionStatus.COMPLETED
        )
    )

    if completed_count != len(question_ids):
        logger.debug(
            f"Lecture {lecture_id} not complete for student {student_id}: "
            f"{completed_count}/{len(question_ids)} questions"
        )
        return CascadeOutcome(
            lecture_id=lecture_id,
            all_questions_complete=False,
            total_assignments=len(assignments)
        )

    written = 0
    for assignment in assignments:
        if await upsert_assignment_completion(db, student_id, assignment.id):
            written += 1

    logger.info(
        f"Lecture {lecture_id} fully answered by student {student_id}: "
        f"{written}/{len(assignments)} assignment completions written"
    )
    return CascadeOutcome(
        lecture_id=lecture_id,
        all_questions_complete=True,
        total_assignments=len(assignments),
        assignments_written=written
    )


async def cascade_for_question(
    db: AsyncSession,
    student_id: int,
    question_id: int
) -> bool:
    """
    Run the lecture cascade for every assignment that references a
    question the student just completed.

    Each lecture is evaluated inside its own savepoint. A failing lecture
    is logged and rolled back alone; the question write and the other
    lectures are unaffected. A later trigger re-evaluates and finishes
    the job.

    Returns:
        True if any evaluated lecture was fully answered.
    """
    result = await db.execute(
        select(Assignment.lecture_id)
        .where(Assignment.question_id == question_id)
        .order_by(Assignment.id)
    )
    lecture_ids: List[int] = list(result.scalars().all())

    if FeatureFlags.CASCADE_BATCH_BY_LECTURE:
        lecture_ids = list(dict.fromkeys(lecture_ids))

    fired = False
    for lecture_id in lecture_ids:
        try:
            async with db.begin_nested():
                outcome = await evaluate_lecture(db, student_id, lecture_id)
        except InconsistentCascadeInputError as e:
            logger.error(
                f"Skipping cascade for lecture {lecture_id} (student {student_id}): {e}"
            )
            continue
        except SQLAlchemyError:
            logger.exception(
                f"Cascade failed for lecture {lecture_id} (student {student_id}); "
                f"question write kept"
            )
            continue

        if outcome.all_questions_complete:
            fired = True

    return fired


async def recompute_lecture(
    db: AsyncSession,
    student_id: int,
    lecture_id: int
) -> CascadeOutcome:
    """Explicit re-evaluation of one lecture, e.g. after curriculum edits."""
    await require_student(db, student_id)
    await require_lecture(db, lecture_id)
    return await evaluate_lecture(db, student_id, lecture_id)
