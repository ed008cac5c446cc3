"""
Progress Aggregator

Read-side rollups over the completion tables and the curriculum
structure: assignment → lecture → course / student → school.

Nothing here is stored. Every figure is recomputed on read, so a pass
that overlaps concurrent ledger writes may be momentarily behind but is
never permanently stale: completion only ever moves forward.

Percentages use half-up rounding to whole numbers (12.5 → 13), and are
0 when there is nothing to divide by.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Any, Iterable, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.orm.assignment import Assignment
from eduprogress.orm.assignment_completion import AssignmentCompletion
from eduprogress.orm.course import CourseLecture
from eduprogress.orm.lecture import Lecture
from eduprogress.orm.question_completion import QuestionCompletion
from eduprogress.orm.school import SchoolStudent
from eduprogress.orm.student import Student
from eduprogress.services.completion_ledger import status_stats
from eduprogress.services.lookups import (
    require_assignment,
    require_course,
    require_lecture,
    require_school,
    require_student,
)
from eduprogress.state_machines.completion_status import CompletionStatus

logger = logging.getLogger(__name__)

_WHOLE = Decimal("1")


def percent(part: int, whole: int) -> int:
    """round_half_up(100 * part / whole), 0 when whole is 0."""
    if whole <= 0:
        return 0
    value = Decimal(part) * 100 / Decimal(whole)
    return int(value.quantize(_WHOLE, rounding=ROUND_HALF_UP))


def mean_percent(values: Iterable[int]) -> int:
    values = list(values)
    if not values:
        return 0
    value = Decimal(sum(values)) / Decimal(len(values))
    return int(value.quantize(_WHOLE, rounding=ROUND_HALF_UP))


# ================= RESULT TYPES =================

@dataclass
class LectureProgress:
    lecture_id: int
    student_id: int
    total_questions: int
    completed_questions: int
    assignments: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def progress_percent(self) -> int:
        return percent(self.completed_questions, self.total_questions)

    @property
    def is_lecture_completed(self) -> bool:
        return self.total_questions > 0 and self.completed_questions == self.total_questions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lecture_id": self.lecture_id,
            "student_id": self.student_id,
            "total_questions": self.total_questions,
            "completed_questions": self.completed_questions,
            "progress_percent": self.progress_percent,
            "is_lecture_completed": self.is_lecture_completed,
            "assignments": self.assignments,
        }


@dataclass
class LectureSummary:
    """One lecture inside an overall, course or school fold."""
    lecture_id: int
    lecture_title: str
    total_assignments: int
    completed_assignments: int

    @property
    def progress_percent(self) -> int:
        return percent(self.completed_assignments, self.total_assignments)

    @property
    def is_completed(self) -> bool:
        return self.total_assignments > 0 and self.completed_assignments == self.total_assignments

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lecture_id": self.lecture_id,
            "lecture_title": self.lecture_title,
            "total_assignments": self.total_assignments,
            "completed_assignments": self.completed_assignments,
            "progress_percent": self.progress_percent,
            "is_completed": self.is_completed,
        }


@dataclass
class OverallProgress:
    student_id: int
    lectures: List[LectureSummary]
    course_id: Optional[int] = None

    @property
    def total_lectures(self) -> int:
        return len(self.lectures)

    @property
    def completed_lectures(self) -> int:
        return sum(1 for lecture in self.lectures if lecture.is_completed)

    @property
    def overall_progress_percent(self) -> int:
        return mean_percent(lecture.progress_percent for lecture in self.lectures)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "student_id": self.student_id,
            "total_lectures": self.total_lectures,
            "completed_lectures": self.completed_lectures,
            "overall_progress_percent": self.overall_progress_percent,
            "lectures": [lecture.to_dict() for lecture in self.lectures],
        }
        if self.course_id is not None:
            data["course_id"] = self.course_id
        return data


# ================= QUERY HELPERS =================

async def _lecture_totals(
    db: AsyncSession,
    course_id: Optional[int] = None
) -> List[Tuple[int, str, int]]:
    """(lecture_id, title, assignment_count) for lectures with ≥1 assignment."""
    stmt = (
        select(Lecture.id, Lecture.title, func.count(Assignment.id))
        .join(Assignment, Assignment.lecture_id == Lecture.id)
        .group_by(Lecture.id, Lecture.title)
        .order_by(Lecture.id)
    )
    if course_id is not None:
        stmt = stmt.join(CourseLecture, CourseLecture.lecture_id == Lecture.id).where(
            CourseLecture.course_id == course_id
        )
    result = await db.execute(stmt)
    return [tuple(row) for row in result.all()]


async def _completed_per_lecture(
    db: AsyncSession,
    student_ids: List[int]
) -> Dict[Tuple[int, int], int]:
    """{(student_id, lecture_id): completed assignment count}"""
    if not student_ids:
        return {}
    result = await db.execute(
        select(
            AssignmentCompletion.student_id,
            Assignment.lecture_id,
            func.count(AssignmentCompletion.id)
        )
        .join(Assignment, Assignment.id == AssignmentCompletion.assignment_id)
        .where(
            AssignmentCompletion.student_id.in_(student_ids),
            AssignmentCompletion.status == CompletionStatus.COMPLETED
        )
        .group_by(AssignmentCompletion.student_id, Assignment.lecture_id)
    )
    return {(student_id, lecture_id): count for student_id, lecture_id, count in result.all()}


def _fold(
    student_id: int,
    totals: List[Tuple[int, str, int]],
    completed: Dict[Tuple[int, int], int],
    course_id: Optional[int] = None
) -> OverallProgress:
    lectures = [
        LectureSummary(
            lecture_id=lecture_id,
            lecture_title=title,
            total_assignments=total,
            completed_assignments=completed.get((student_id, lecture_id), 0),
        )
        for lecture_id, title, total in totals
    ]
    return OverallProgress(student_id=student_id, lectures=lectures, course_id=course_id)


# ================= PUBLIC API =================

async def lecture_progress(
    db: AsyncSession,
    student_id: int,
    lecture_id: int
) -> LectureProgress:
    """
    Progress of one student through one lecture.

    completed_questions counts assignments with a completed
    assignment-completion row. The per-assignment breakdown also reports
    the student's question status so callers can tell which questions are
    still open.
    """
    await require_student(db, student_id)
    await require_lecture(db, lecture_id)

    result = await db.execute(
        select(Assignment)
        .where(Assignment.lecture_id == lecture_id)
        .order_by(Assignment.assignment_level, Assignment.id)
    )
    assignments = result.scalars().all()

    if not assignments:
        return LectureProgress(
            lecture_id=lecture_id,
            student_id=student_id,
            total_questions=0,
            completed_questions=0
        )

    result = await db.execute(
        select(AssignmentCompletion.assignment_id, AssignmentCompletion.status).where(
            AssignmentCompletion.student_id == student_id,
            AssignmentCompletion.assignment_id.in_([a.id for a in assignments])
        )
    )
    assignment_status = dict(result.all())

    result = await db.execute(
        select(QuestionCompletion.question_id, QuestionCompletion.status).where(
            QuestionCompletion.student_id == student_id,
            QuestionCompletion.question_id.in_({a.question_id for a in assignments})
        )
    )
    question_status = dict(result.all())

    breakdown = []
    completed = 0
    for assignment in assignments:
        a_status = assignment_status.get(assignment.id)
        q_status = question_status.get(assignment.question_id)
        if a_status == CompletionStatus.COMPLETED:
            completed += 1
        entry = assignment.to_dict()
        entry.update({
            "assignment_status": a_status.value if a_status else None,
            "question_status": q_status.value if q_status else None,
            "is_completed": q_status == CompletionStatus.COMPLETED,
            "can_submit": q_status != CompletionStatus.COMPLETED,
        })
        breakdown.append(entry)

    return LectureProgress(
        lecture_id=lecture_id,
        student_id=student_id,
        total_questions=len(assignments),
        completed_questions=completed,
        assignments=breakdown
    )


async def student_overall_progress(
    db: AsyncSession,
    student_id: int
) -> OverallProgress:
    """Mean lecture progress over every lecture that has at least one assignment."""
    await require_student(db, student_id)
    totals = await _lecture_totals(db)
    completed = await _completed_per_lecture(db, [student_id])
    return _fold(student_id, totals, completed)


async def course_progress(
    db: AsyncSession,
    student_id: int,
    course_id: int
) -> OverallProgress:
    """Same fold as the overall progress, restricted to one course's lectures."""
    await require_student(db, student_id)
    await require_course(db, course_id)
    totals = await _lecture_totals(db, course_id=course_id)
    completed = await _completed_per_lecture(db, [student_id])
    return _fold(student_id, totals, completed, course_id=course_id)


async def school_progress(
    db: AsyncSession,
    school_id: int
) -> Dict[str, Any]:
    """Overall progress of every student enrolled in a school."""
    school = await require_school(db, school_id)

    result = await db.execute(
        select(Student.id, Student.name)
        .join(SchoolStudent, SchoolStudent.student_id == Student.id)
        .where(SchoolStudent.school_id == school_id)
        .order_by(Student.id)
    )
    students = result.all()

    totals = await _lecture_totals(db)
    completed = await _completed_per_lecture(db, [student_id for student_id, _ in students])

    rows = []
    for student_id, name in students:
        overall = _fold(student_id, totals, completed)
        rows.append({
            "student_id": student_id,
            "student_name": name,
            "total_lectures": overall.total_lectures,
            "completed_lectures": overall.completed_lectures,
            "overall_progress_percent": overall.overall_progress_percent,
        })

    return {
        "school_id": school_id,
        "school_name": school.school_name,
        "total_students": len(rows),
        "students_completed_all": sum(
            1 for r in rows
            if r["total_lectures"] > 0 and r["completed_lectures"] == r["total_lectures"]
        ),
        "average_progress_percent": mean_percent(r["overall_progress_percent"] for r in rows),
        "students": rows,
    }


async def assignment_completion_status(
    db: AsyncSession,
    student_id: int,
    assignment_id: int
) -> Dict[str, Any]:
    await require_student(db, student_id)
    await require_assignment(db, assignment_id)

    status = await db.scalar(
        select(AssignmentCompletion.status).where(
            AssignmentCompletion.student_id == student_id,
            AssignmentCompletion.assignment_id == assignment_id
        )
    )
    return {
        "student_id": student_id,
        "assignment_id": assignment_id,
        "status": status.value if status else None,
        "is_completed": status == CompletionStatus.COMPLETED,
    }


async def list_student_assignment_completions(
    db: AsyncSession,
    student_id: int
) -> Dict[str, Any]:
    await require_student(db, student_id)

    result = await db.execute(
        select(AssignmentCompletion, Assignment, Lecture.title)
        .join(Assignment, Assignment.id == AssignmentCompletion.assignment_id)
        .join(Lecture, Lecture.id == Assignment.lecture_id)
        .where(AssignmentCompletion.student_id == student_id)
        .order_by(AssignmentCompletion.updated_at, AssignmentCompletion.id)
    )

    assignments = []
    for completion, assignment, lecture_title in result.all():
        assignments.append({
            "id": completion.id,
            "assignment_id": assignment.id,
            "status": completion.status.value,
            "completed_at": completion.updated_at.isoformat() if completion.updated_at else None,
            "lecture_id": assignment.lecture_id,
            "lecture_title": lecture_title,
            "difficulty_level": assignment.difficulty_level.value,
            "question_type": assignment.question_type.value,
            "assignment_level": assignment.assignment_level,
        })

    return {
        "student_id": student_id,
        "stats": status_stats(a["status"] for a in assignments),
        "assignments": assignments,
    }


async def lecture_completion_analytics(
    db: AsyncSession,
    lecture_id: int
) -> Dict[str, Any]:
    """Per-student progress for every student with a completion row in the lecture."""
    lecture = await require_lecture(db, lecture_id)

    total = await db.scalar(
        select(func.count(Assignment.id)).where(Assignment.lecture_id == lecture_id)
    )

    result = await db.execute(
        select(Student.id, Student.name, AssignmentCompletion.status)
        .join(AssignmentCompletion, AssignmentCompletion.student_id == Student.id)
        .join(Assignment, Assignment.id == AssignmentCompletion.assignment_id)
        .where(Assignment.lecture_id == lecture_id)
        .order_by(Student.id)
    )

    per_student: Dict[int, Dict[str, Any]] = {}
    for student_id, name, status in result.all():
        entry = per_student.setdefault(student_id, {"name": name, "completed": 0})
        if status == CompletionStatus.COMPLETED:
            entry["completed"] += 1

    student_progress = [
        {
            "student_id": student_id,
            "student_name": data["name"],
            "completed_assignments": data["completed"],
            "total_assignments": total,
            "progress_percent": percent(data["completed"], total),
            "is_lecture_completed": total > 0 and data["completed"] == total,
        }
        for student_id, data in per_student.items()
    ]

    return {
        "lecture_id": lecture_id,
        "lecture_title": lecture.title,
        "total_assignments": total,
        "total_students_attempted": len(student_progress),
        "students_completed": sum(1 for s in student_progress if s["is_lecture_completed"]),
        "student_progress": student_progress,
    }


async def assignment_completion_analytics(
    db: AsyncSession,
    assignment_id: int
) -> Dict[str, Any]:
    await require_assignment(db, assignment_id)

    result = await db.execute(
        select(AssignmentCompletion, Student.name)
        .join(Student, Student.id == AssignmentCompletion.student_id)
        .where(AssignmentCompletion.assignment_id == assignment_id)
        .order_by(AssignmentCompletion.updated_at, AssignmentCompletion.id)
    )

    completions = [
        {
            "id": completion.id,
            "student_id": completion.student_id,
            "student_name": name,
            "status": completion.status.value,
            "completed_at": completion.updated_at.isoformat() if completion.updated_at else None,
        }
        for completion, name in result.all()
    ]

    return {
        "assignment_id": assignment_id,
        "total_completions": len(completions),
        "completed_count": sum(1 for c in completions if c["status"] == CompletionStatus.COMPLETED.value),
        "completions": completions,
    }
