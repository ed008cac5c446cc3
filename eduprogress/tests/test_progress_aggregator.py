"""
Progress aggregator tests: rounding, lecture breakdowns and rollups.
"""
import pytest

from eduprogress.errors import NotFoundError, ErrorCode
from eduprogress.orm.question import QuestionType
from eduprogress.orm.student import StudentRole
from eduprogress.services import progress_aggregator
from eduprogress.services.completion_ledger import set_status
from eduprogress.services.progress_aggregator import mean_percent, percent


class TestRounding:
    """Whole-number percentages, half-up."""

    @pytest.mark.parametrize("part,whole,expected", [
        (0, 0, 0),
        (3, 0, 0),
        (0, 4, 0),
        (1, 8, 13),
        (1, 3, 33),
        (2, 3, 67),
        (1, 2, 50),
        (4, 4, 100),
    ])
    def test_percent(self, part, whole, expected):
        assert percent(part, whole) == expected

    def test_mean_of_nothing_is_zero(self):
        assert mean_percent([]) == 0

    def test_mean_rounds_half_up(self):
        assert mean_percent([50, 25]) == 38
        assert mean_percent([100, 0, 0]) == 33


async def _complete(db, student_id, *questions):
    for question in questions:
        await set_status(db, student_id, question.id, "completed")


async def test_lecture_progress_reaches_full(db, student, two_question_lecture):
    lecture, (q1, q2), _ = two_question_lecture

    await _complete(db, student.id, q1)
    partial = await progress_aggregator.lecture_progress(db, student.id, lecture.id)
    await _complete(db, student.id, q2)
    full = await progress_aggregator.lecture_progress(db, student.id, lecture.id)

    assert partial.total_questions == 2
    assert partial.completed_questions == 0
    assert partial.progress_percent == 0
    assert partial.is_lecture_completed is False

    data = full.to_dict()
    assert data["total_questions"] == 2
    assert data["completed_questions"] == 2
    assert data["progress_percent"] == 100
    assert data["is_lecture_completed"] is True


async def test_lecture_breakdown(db, student, two_question_lecture):
    lecture, (q1, q2), (a1, a2) = two_question_lecture
    await set_status(db, student.id, q2.id, "inProgress")
    await set_status(db, student.id, q1.id, "completed")

    progress = await progress_aggregator.lecture_progress(db, student.id, lecture.id)

    assert [entry["id"] for entry in progress.assignments] == [a1.id, a2.id]
    first, second = progress.assignments
    assert first["question_status"] == "completed"
    assert first["is_completed"] is True
    assert first["can_submit"] is False
    assert first["assignment_status"] is None
    assert second["question_status"] == "inProgress"
    assert second["can_submit"] is True


async def test_lecture_without_assignments(db, student, make_lecture):
    lecture = await make_lecture("Empty")

    progress = await progress_aggregator.lecture_progress(db, student.id, lecture.id)

    assert progress.total_questions == 0
    assert progress.progress_percent == 0
    assert progress.is_lecture_completed is False
    assert progress.assignments == []


async def test_lecture_progress_unknown_student(db, two_question_lecture):
    lecture, _, _ = two_question_lecture

    with pytest.raises(NotFoundError) as exc_info:
        await progress_aggregator.lecture_progress(db, 77, lecture.id)

    assert exc_info.value.code == ErrorCode.STUDENT_NOT_FOUND


@pytest.fixture
def second_lecture(make_lecture, make_question, make_assignment):
    async def _make():
        lecture = await make_lecture("Recursion")
        question = await make_question(QuestionType.CODING)
        await make_assignment(lecture.id, question.id, QuestionType.CODING)
        return lecture, question
    return _make


async def test_overall_progress_is_monotonic(db, student, two_question_lecture, second_lecture, make_lecture):
    _, (q1, q2), _ = two_question_lecture
    _, q3 = await second_lecture()
    await make_lecture("No assignments yet")

    seen = []
    for question in (q1, q2, q3):
        await _complete(db, student.id, question)
        overall = await progress_aggregator.student_overall_progress(db, student.id)
        seen.append(overall.overall_progress_percent)

    assert seen == [0, 50, 100]
    assert seen == sorted(seen)


async def test_overall_progress_breakdown(db, student, two_question_lecture, second_lecture):
    first, (q1, q2), _ = two_question_lecture
    recursion, _ = await second_lecture()
    await _complete(db, student.id, q1, q2)

    overall = await progress_aggregator.student_overall_progress(db, student.id)
    data = overall.to_dict()

    assert data["total_lectures"] == 2
    assert data["completed_lectures"] == 1
    assert data["overall_progress_percent"] == 50
    assert "course_id" not in data
    by_lecture = {lecture["lecture_id"]: lecture for lecture in data["lectures"]}
    assert by_lecture[first.id]["progress_percent"] == 100
    assert by_lecture[recursion.id]["completed_assignments"] == 0


async def test_course_progress_only_counts_course_lectures(
    db, student, two_question_lecture, second_lecture, make_course
):
    first, (q1, q2), _ = two_question_lecture
    await second_lecture()
    course = await make_course("Intro", lecture_ids=[first.id])
    await _complete(db, student.id, q1, q2)

    progress = await progress_aggregator.course_progress(db, student.id, course.id)

    assert progress.course_id == course.id
    assert progress.total_lectures == 1
    assert progress.overall_progress_percent == 100
    assert progress.to_dict()["course_id"] == course.id


async def test_course_progress_unknown_course(db, student):
    with pytest.raises(NotFoundError) as exc_info:
        await progress_aggregator.course_progress(db, student.id, 5)

    assert exc_info.value.code == ErrorCode.COURSE_NOT_FOUND


async def test_school_progress(db, student, make_student, make_school, two_question_lecture, second_lecture):
    _, (q1, q2), _ = two_question_lecture
    await second_lecture()
    grace = await make_student("Grace", role=StudentRole.SCHOOL)
    await make_student("Not enrolled")
    school = await make_school("Northside", student_ids=[student.id, grace.id])
    await _complete(db, student.id, q1, q2)

    data = await progress_aggregator.school_progress(db, school.id)

    assert data["school_name"] == "Northside"
    assert data["total_students"] == 2
    assert data["students_completed_all"] == 0
    assert data["average_progress_percent"] == 25
    assert [row["overall_progress_percent"] for row in data["students"]] == [50, 0]


async def test_school_without_students(db, make_school):
    school = await make_school("Empty")

    data = await progress_aggregator.school_progress(db, school.id)

    assert data["total_students"] == 0
    assert data["average_progress_percent"] == 0
    assert data["students"] == []


async def test_assignment_status_and_listing(db, student, two_question_lecture):
    lecture, (q1, q2), (a1, a2) = two_question_lecture

    before = await progress_aggregator.assignment_completion_status(db, student.id, a1.id)
    await _complete(db, student.id, q1, q2)
    after = await progress_aggregator.assignment_completion_status(db, student.id, a1.id)
    listing = await progress_aggregator.list_student_assignment_completions(db, student.id)

    assert before["status"] is None
    assert before["is_completed"] is False
    assert after["status"] == "completed"
    assert after["is_completed"] is True

    assert listing["stats"]["total"] == 2
    assert listing["stats"]["completed"] == 2
    assert {a["assignment_id"] for a in listing["assignments"]} == {a1.id, a2.id}
    assert all(a["lecture_title"] == lecture.title for a in listing["assignments"])


async def test_assignment_status_unknown_assignment(db, student):
    with pytest.raises(NotFoundError) as exc_info:
        await progress_aggregator.assignment_completion_status(db, student.id, 31)

    assert exc_info.value.code == ErrorCode.ASSIGNMENT_NOT_FOUND


async def test_lecture_analytics(db, student, make_student, two_question_lecture):
    lecture, (q1, q2), _ = two_question_lecture
    await make_student("Grace")
    await _complete(db, student.id, q1, q2)

    data = await progress_aggregator.lecture_completion_analytics(db, lecture.id)

    assert data["lecture_title"] == "Loops"
    assert data["total_assignments"] == 2
    assert data["total_students_attempted"] == 1
    assert data["students_completed"] == 1
    assert data["student_progress"][0]["student_name"] == "Ada"
    assert data["student_progress"][0]["progress_percent"] == 100


async def test_assignment_analytics(db, student, make_student, two_question_lecture):
    _, (q1, q2), (a1, _) = two_question_lecture
    grace = await make_student("Grace")
    await _complete(db, student.id, q1, q2)
    await _complete(db, grace.id, q1)

    data = await progress_aggregator.assignment_completion_analytics(db, a1.id)

    assert data["total_completions"] == 1
    assert data["completed_count"] == 1
    assert data["completions"][0]["student_id"] == student.id
