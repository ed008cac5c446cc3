"""
Completion ledger tests: status writes, terminal rejection, read contract.
"""
import pytest
from sqlalchemy import select, func

from eduprogress.config.feature_flags import FeatureFlags
from eduprogress.errors import (
    AlreadyCompletedError,
    BadRequestError,
    ErrorCode,
    InvalidStateError,
    NotFoundError,
)
from eduprogress.orm.assignment_completion import AssignmentCompletion
from eduprogress.orm.question import QuestionType
from eduprogress.orm.question_completion import QuestionCompletion
from eduprogress.services.completion_ledger import (
    get_status,
    list_student_question_completions,
    mark_in_progress,
    set_status,
)
from eduprogress.state_machines.completion_status import CompletionStatus, TRANSITIONS


async def _ledger_rows(db, student_id, question_id):
    return await db.scalar(
        select(func.count(QuestionCompletion.id)).where(
            QuestionCompletion.student_id == student_id,
            QuestionCompletion.question_id == question_id
        )
    )


async def test_first_write_creates_record(db, student, make_question):
    question = await make_question()

    change = await set_status(db, student.id, question.id, "inProgress")

    assert change.record.id is not None
    assert change.record.status == CompletionStatus.IN_PROGRESS
    assert change.assignment_auto_completed is False
    assert await _ledger_rows(db, student.id, question.id) == 1


async def test_non_terminal_status_is_overwritten_in_place(db, student, make_question):
    question = await make_question()

    first = await set_status(db, student.id, question.id, CompletionStatus.IN_PROGRESS)
    first_updated_at = first.record.updated_at
    second = await set_status(db, student.id, question.id, CompletionStatus.PENDING)

    assert second.record.id == first.record.id
    assert second.record.status == CompletionStatus.PENDING
    assert second.record.updated_at >= first_updated_at
    assert await _ledger_rows(db, student.id, question.id) == 1


@pytest.mark.parametrize("target", list(CompletionStatus))
async def test_completed_record_rejects_every_target(db, student, make_question, target):
    question = await make_question()
    await set_status(db, student.id, question.id, CompletionStatus.COMPLETED)

    with pytest.raises(AlreadyCompletedError) as exc_info:
        await set_status(db, student.id, question.id, target)

    assert exc_info.value.code == ErrorCode.ALREADY_COMPLETED
    assert exc_info.value.status_code == 400
    assert exc_info.value.details["requested_status"] == target.value

    record = (await db.execute(
        select(QuestionCompletion).where(QuestionCompletion.question_id == question.id)
    )).scalar_one()
    assert record.status == CompletionStatus.COMPLETED


async def test_mark_in_progress_inherits_terminal_rejection(db, student, make_question):
    question = await make_question()
    await set_status(db, student.id, question.id, "completed")

    with pytest.raises(AlreadyCompletedError):
        await mark_in_progress(db, student.id, question.id)


async def test_writes_follow_transition_table(db, student, make_question, monkeypatch):
    monkeypatch.setitem(
        TRANSITIONS,
        CompletionStatus.IN_PROGRESS,
        frozenset({CompletionStatus.IN_PROGRESS, CompletionStatus.COMPLETED})
    )
    question = await make_question()
    await set_status(db, student.id, question.id, "inProgress")

    with pytest.raises(InvalidStateError) as exc_info:
        await set_status(db, student.id, question.id, "pending")

    assert not isinstance(exc_info.value, AlreadyCompletedError)
    assert exc_info.value.code == ErrorCode.INVALID_STATE
    assert exc_info.value.details["current_status"] == "inProgress"
    assert (await get_status(db, student.id, question.id)).status == CompletionStatus.IN_PROGRESS

    change = await set_status(db, student.id, question.id, "completed")
    assert change.record.status == CompletionStatus.COMPLETED


async def test_mark_in_progress_never_cascades(db, student, two_question_lecture):
    _, questions, _ = two_question_lecture

    change = await mark_in_progress(db, student.id, questions[0].id)

    assert change.record.status == CompletionStatus.IN_PROGRESS
    assert change.assignment_auto_completed is False
    assert await db.scalar(select(func.count(AssignmentCompletion.id))) == 0


async def test_row_written_by_another_flow_is_updated_not_duplicated(db, student, make_question):
    question = await make_question()
    db.add(QuestionCompletion(
        student_id=student.id,
        question_id=question.id,
        status=CompletionStatus.PENDING
    ))
    await db.flush()

    change = await set_status(db, student.id, question.id, "completed")

    assert change.record.status == CompletionStatus.COMPLETED
    assert await _ledger_rows(db, student.id, question.id) == 1


async def test_unknown_student(db, make_question):
    question = await make_question()

    with pytest.raises(NotFoundError) as exc_info:
        await set_status(db, 999, question.id, "completed")

    assert exc_info.value.code == ErrorCode.STUDENT_NOT_FOUND


async def test_unknown_question(db, student):
    with pytest.raises(NotFoundError) as exc_info:
        await set_status(db, student.id, 999, "completed")

    assert exc_info.value.code == ErrorCode.QUESTION_NOT_FOUND
    assert exc_info.value.status_code == 404


async def test_invalid_status_string(db, student, make_question):
    question = await make_question()

    with pytest.raises(BadRequestError) as exc_info:
        await set_status(db, student.id, question.id, "done")

    assert exc_info.value.code == ErrorCode.INVALID_STATUS
    assert await _ledger_rows(db, student.id, question.id) == 0


async def test_get_status_without_record(db, student, make_question):
    question = await make_question()

    result = await get_status(db, student.id, question.id)

    assert result.status is None
    assert result.is_completed is False
    assert result.can_submit is True


async def test_get_status_follows_writes(db, student, make_question):
    question = await make_question()

    await set_status(db, student.id, question.id, "inProgress")
    in_progress = await get_status(db, student.id, question.id)
    await set_status(db, student.id, question.id, "completed")
    completed = await get_status(db, student.id, question.id)

    assert in_progress.to_dict() == {
        "student_id": student.id,
        "question_id": question.id,
        "status": "inProgress",
        "is_completed": False,
        "can_submit": True,
    }
    assert completed.is_completed is True
    assert completed.can_submit is False


async def test_completion_reports_cascade(db, student, two_question_lecture):
    _, (q1, q2), _ = two_question_lecture

    first = await set_status(db, student.id, q1.id, "completed")
    second = await set_status(db, student.id, q2.id, "completed")

    assert first.assignment_auto_completed is False
    assert second.assignment_auto_completed is True
    assert second.to_dict()["assignment_auto_completed"] is True


async def test_cascade_can_be_switched_off(db, student, two_question_lecture, monkeypatch):
    monkeypatch.setattr(FeatureFlags, "FEATURE_CASCADE_ON_COMPLETION", False)
    _, (q1, q2), _ = two_question_lecture

    await set_status(db, student.id, q1.id, "completed")
    change = await set_status(db, student.id, q2.id, "completed")

    assert change.assignment_auto_completed is False
    assert await db.scalar(select(func.count(AssignmentCompletion.id))) == 0


async def test_list_student_question_completions(db, student, make_question):
    mcq = await make_question(QuestionType.MCQ)
    coding = await make_question(QuestionType.CODING)
    blockly = await make_question(QuestionType.BLOCKLY)

    await set_status(db, student.id, mcq.id, "completed")
    await set_status(db, student.id, coding.id, "inProgress")
    await set_status(db, student.id, blockly.id, "pending")

    data = await list_student_question_completions(db, student.id)

    assert data["stats"] == {"total": 3, "completed": 1, "in_progress": 1, "pending": 1}
    by_question = {q["question_id"]: q for q in data["questions"]}
    assert by_question[mcq.id]["question_type"] == "mcq"
    assert by_question[coding.id]["status"] == "inProgress"


async def test_list_for_unknown_student(db):
    with pytest.raises(NotFoundError):
        await list_student_question_completions(db, 12345)
