"""
eduprogress/orm/completion_status_type.py
Column type shared by both completion tables
"""
from sqlalchemy import Enum as SQLEnum
from eduprogress.state_machines.completion_status import CompletionStatus


def completion_status_column_type():
    """Stores the wire spelling (pending / inProgress / completed)."""
    return SQLEnum(
        CompletionStatus,
        name="completion_status",
        values_callable=lambda e: [m.value for m in e]
    )
