"""
eduprogress/orm/assignment_completion.py
AssignmentCompletion - derived per-assignment completion

Materialized by the cascade evaluator once every question of a lecture is
completed by the student. Other flows may write here too, so the cascade
upserts with a monotonic guard: it may upgrade a non-completed row to
completed but never rewrites a completed one.
"""
from sqlalchemy import Column, Integer, ForeignKey, Index, UniqueConstraint
from eduprogress.orm.base import BaseModel
from eduprogress.orm.completion_status_type import completion_status_column_type
from eduprogress.state_machines.completion_status import CompletionStatus


class AssignmentCompletion(BaseModel):
    __tablename__ = "assignment_completions"

    student_id = Column(
        Integer,
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    assignment_id = Column(
        Integer,
        ForeignKey("assignments.id", ondelete="CASCADE"),
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
            "assignment_id",
            name="uq_assignment_completion_student_assignment"
        ),
        Index(
            "ix_assignment_completion_student_status",
            "student_id",
            "status"
        ),
    )

    @property
    def is_completed(self) -> bool:
        return self.status == CompletionStatus.COMPLETED

    def __repr__(self):
        return (
            f"<AssignmentCompletion("
            f"student_id={self.student_id}, "
            f"assignment_id={self.assignment_id}, "
            f"status={self.status})>"
        )

    def to_dict(self):
        return {
            "id": self.id,
            "student_id": self.student_id,
            "assignment_id": self.assignment_id,
            "status": self.status.value if self.status else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
