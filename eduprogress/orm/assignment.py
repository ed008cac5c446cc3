"""
eduprogress/orm/assignment.py
Assignment - placement of one question inside one lecture

`assignment_level` only orders assignments for display. Several
assignments in a lecture may share a level.
"""
from enum import Enum
from sqlalchemy import Column, Integer, ForeignKey, Index, Enum as SQLEnum
from eduprogress.orm.base import BaseModel
from eduprogress.orm.question import question_type_column_type


class DifficultyLevel(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Assignment(BaseModel):
    __tablename__ = "assignments"

    lecture_id = Column(
        Integer,
        ForeignKey("lectures.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Lecture this assignment belongs to"
    )

    question_id = Column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Question placed by this assignment"
    )

    difficulty_level = Column(
        SQLEnum(DifficultyLevel, name="difficulty_level", values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )

    question_type = Column(
        question_type_column_type(),
        nullable=False,
        comment="Copy of the question's type tag for listing queries"
    )

    assignment_level = Column(
        Integer,
        nullable=False,
        default=1,
        comment="Display ordering within the lecture (not unique)"
    )

    __table_args__ = (
        Index("ix_assignment_lecture_level", "lecture_id", "assignment_level"),
    )

    def __repr__(self):
        return (
            f"<Assignment(id={self.id}, lecture_id={self.lecture_id}, "
            f"question_id={self.question_id}, level={self.assignment_level})>"
        )

    def to_dict(self):
        return {
            "id": self.id,
            "lecture_id": self.lecture_id,
            "question_id": self.question_id,
            "difficulty_level": self.difficulty_level.value if self.difficulty_level else None,
            "question_type": self.question_type.value if self.question_type else None,
            "assignment_level": self.assignment_level,
        }
