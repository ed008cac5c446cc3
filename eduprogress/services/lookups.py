"""
Existence checks shared by the completion services.

Each helper returns the row or raises NotFoundError with the
resource-specific error code.
"""
from typing import Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.errors import NotFoundError, ErrorCode
from eduprogress.orm.assignment import Assignment
from eduprogress.orm.course import Course
from eduprogress.orm.lecture import Lecture
from eduprogress.orm.question import Question
from eduprogress.orm.school import School
from eduprogress.orm.student import Student

T = TypeVar("T")


async def _require(db: AsyncSession, model: Type[T], identifier: int, resource: str, code: str) -> T:
    row = await db.get(model, identifier)
    if row is None:
        raise NotFoundError(resource, identifier, code=code)
    return row


async def require_student(db: AsyncSession, student_id: int) -> Student:
    return await _require(db, Student, student_id, "Student", ErrorCode.STUDENT_NOT_FOUND)


async def require_question(db: AsyncSession, question_id: int) -> Question:
    return await _require(db, Question, question_id, "Question", ErrorCode.QUESTION_NOT_FOUND)


async def require_lecture(db: AsyncSession, lecture_id: int) -> Lecture:
    return await _require(db, Lecture, lecture_id, "Lecture", ErrorCode.LECTURE_NOT_FOUND)


async def require_assignment(db: AsyncSession, assignment_id: int) -> Assignment:
    return await _require(db, Assignment, assignment_id, "Assignment", ErrorCode.ASSIGNMENT_NOT_FOUND)


async def require_course(db: AsyncSession, course_id: int) -> Course:
    return await _require(db, Course, course_id, "Course", ErrorCode.COURSE_NOT_FOUND)


async def require_school(db: AsyncSession, school_id: int) -> School:
    return await _require(db, School, school_id, "School", ErrorCode.SCHOOL_NOT_FOUND)
