"""
eduprogress/orm/question_completion.py
QuestionCompletion - the completion ledger

One row per (student, question). This is the atomic unit of progress:
every other progress figure is derived from it.

Key Design Decisions:
- Unique (student_id, question_id) so two concurrent "first" writes
  cannot both insert
- status = completed is terminal; writers use a conditional
  UPDATE ... WHERE status != 'completed' instead of read-then-write
- Rows are never deleted by normal flow
"""
from sqlalchemy import Column, Integer, ForeignKey, Index, UniqueConstraint
from eduprogress.orm.base import BaseModel
from eduprogress.orm.completion_status_type import completion_status_column_type
from eduprogress.state_machines.completion_status import CompletionStatus


class QuestionCompletion(BaseModel):
    """
    A student's status on a single question.

    Business Logic:
    - First status-changing request → row created with that status
    - Later requests overwrite status and refresh updated_at
    - Once completed → every further request is rejected
    """
    __tablename__ = "question_completions"

    student_id = Column(
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    question_id = Column(
        Integer,
        ForeignKey("questions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    status = Column(
        completion_status_column_type(),
        nullable=False,
        default=CompletionStatus.PENDING,
        index=True
    )

    __table_args__ = (
        UniqueConstraint(
            "student_id",
            "question_id",
            name="uq_question_completion_student_question"
        ),
        Index(
            "ix_question_completion_student_status",
            "student_id",
            "status"
        ),
    )

    @property
    def is_completed(self) -> bool:
        return self.status == CompletionStatus.COMPLETED

    def __repr__(self):
        return (
            f"<QuestionCompletion("
            f"student_id={self.student_id}, "
            f"question_id={self.question_id}, "
            f"status={self.status})>"
        )

    def to_dict(self):
        return {
            "id": self.id,
            "student_id": self.student_id,
            "question_id": self.question_id,
            "status": self.status.value if self.status else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
