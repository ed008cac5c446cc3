"""
Shared fixtures: in-memory database per test plus seed factories.
"""
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from eduprogress.orm.base import Base
from eduprogress.orm.assignment import Assignment, DifficultyLevel
from eduprogress.orm.course import Course, CourseLecture
from eduprogress.orm.lecture import Lecture
from eduprogress.orm.question import Question, QuestionType
from eduprogress.orm.school import School, SchoolStudent
from eduprogress.orm.student import Student, StudentRole

# Test database setup
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def make_student(db: AsyncSession):
    async def _make(name: str = "Test Student", **kwargs) -> Student:
        kwargs.setdefault("level", 1)
        kwargs.setdefault("role", StudentRole.INDIVIDUAL)
        student = Student(name=name, **kwargs)
        db.add(student)
        await db.flush()
        return student
    return _make


@pytest.fixture
def make_lecture(db: AsyncSession):
    async def _make(title: str = "Lecture") -> Lecture:
        lecture = Lecture(title=title, description=f"{title} description", url="https://example.test/video")
        db.add(lecture)
        await db.flush()
        return lecture
    return _make


@pytest.fixture
def make_question(db: AsyncSession):
    async def _make(question_type: QuestionType = QuestionType.MCQ) -> Question:
        question = Question(question_type=question_type)
        db.add(question)
        await db.flush()
        return question
    return _make


@pytest.fixture
def make_assignment(db: AsyncSession):
    async def _make(
        lecture_id: int,
        question_id: int,
        question_type: QuestionType = QuestionType.MCQ,
        level: int = 1,
        difficulty: DifficultyLevel = DifficultyLevel.EASY,
    ) -> Assignment:
        assignment = Assignment(
            lecture_id=lecture_id,
            question_id=question_id,
            question_type=question_type,
            assignment_level=level,
            difficulty_level=difficulty,
        )
        db.add(assignment)
        await db.flush()
        return assignment
    return _make


@pytest.fixture
def make_course(db: AsyncSession):
    async def _make(name: str = "Course", lecture_ids=()) -> Course:
        course = Course(course_name=name, course_detail=f"{name} detail")
        db.add(course)
        await db.flush()
        for lecture_id in lecture_ids:
            db.add(CourseLecture(course_id=course.id, lecture_id=lecture_id))
        await db.flush()
        return course
    return _make


@pytest.fixture
def make_school(db: AsyncSession):
    async def _make(name: str = "School", student_ids=()) -> School:
        school = School(
            school_name=name,
            school_email=f"{name.lower().replace(' ', '')}@school.test",
            domain=f"{name.lower().replace(' ', '-')}.school.test",
        )
        db.add(school)
        await db.flush()
        for student_id in student_ids:
            db.add(SchoolStudent(school_id=school.id, student_id=student_id))
        await db.flush()
        return school
    return _make


@pytest_asyncio.fixture
async def student(make_student) -> Student:
    return await make_student("Ada")


@pytest_asyncio.fixture
async def two_question_lecture(make_lecture, make_question, make_assignment):
    """
    Lecture with two assignments: Q1 (mcq) at level 1, Q2 (coding) at level 2.

    Returns (lecture, [q1, q2], [a1, a2]).
    """
    lecture = await make_lecture("Loops")
    q1 = await make_question(QuestionType.MCQ)
    q2 = await make_question(QuestionType.CODING)
    a1 = await make_assignment(lecture.id, q1.id, QuestionType.MCQ, level=1)
    a2 = await make_assignment(lecture.id, q2.id, QuestionType.CODING, level=2, difficulty=DifficultyLevel.MEDIUM)
    return lecture, [q1, q2], [a1, a2]
