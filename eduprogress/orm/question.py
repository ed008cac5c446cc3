"""
eduprogress/orm/question.py
Question - the question registry

Read-only for the completion engine. A question carries exactly one type
tag and is never mutated once an assignment references it.
"""
from enum import Enum
from sqlalchemy import Column, Enum as SQLEnum
from eduprogress.orm.base import BaseModel


class QuestionType(str, Enum):
    """
    Closed set of question formats.

    - MCQ: multiple choice
    - CODING: code submission
    - PARAGRAPH: free text
    - BLOCKLY: block-based programming
    """
    MCQ = "mcq"
    CODING = "coding"
    PARAGRAPH = "paragraph"
    BLOCKLY = "blockly"


def question_type_column_type():
    return SQLEnum(QuestionType, name="question_type", values_callable=lambda e: [m.value for m in e])


class Question(BaseModel):
    __tablename__ = "questions"

    question_type = Column(
        question_type_column_type(),
        nullable=False,
        index=True
    )

    def __repr__(self):
        return f"<Question(id={self.id}, type={self.question_type})>"

    def to_dict(self):
        return {
            "id": self.id,
            "question_type": self.question_type.value if self.question_type else None,
        }
