"""
eduprogress/schemas/progress.py
Pydantic schemas for completion and progress endpoints

All endpoints use the standardized response format:
{
    "success": bool,
    "message": str,
    "data": dict
}
"""
from typing import Dict, Any
from pydantic import BaseModel, ConfigDict, Field

from eduprogress.state_machines.completion_status import CompletionStatus


# ================= REQUEST SCHEMAS =================

class QuestionStatusRequest(BaseModel):
    """
    Request schema for setting a student's status on a question.

    Used by: POST /api/progress/questions/status
    """
    student_id: int = Field(..., gt=0, description="ID of the student")
    question_id: int = Field(..., gt=0, description="ID of the question")
    status: CompletionStatus = Field(..., description="pending | inProgress | completed")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "student_id": 7,
                "question_id": 42,
                "status": "completed"
            }
        }
    )


class QuestionInProgressRequest(BaseModel):
    """
    Request schema for marking a question in progress.

    Used by: POST /api/progress/questions/in-progress
    """
    student_id: int = Field(..., gt=0, description="ID of the student")
    question_id: int = Field(..., gt=0, description="ID of the question")


# ================= RESPONSE SCHEMAS =================

class StandardResponse(BaseModel):
    """
    Standardized response format for all progress endpoints.
    """
    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable status message")
    data: Dict[str, Any] = Field(..., description="Endpoint-specific response data")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "message": "Operation completed successfully",
                "data": {}
            }
        }
    )
