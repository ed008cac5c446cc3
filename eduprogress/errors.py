"""
eduprogress/errors.py
Centralized Error Handling

ERROR RESPONSE STRUCTURE:
{
    "success": false,
    "error": "ErrorType",
    "message": "Human-readable description",
    "code": "UNIQUE_ERROR_CODE",
    "details": {} (optional)
}

HTTP STATUS CODE DISCIPLINE:
- 200: Successful, valid request
- 400: Invalid input or rejected state transition
- 404: Resource does not exist
- 422: Validation error (Pydantic)
- 429: Rate limit exceeded
- 500: NEVER caused by user input (internal only)
"""

import logging
from typing import Optional, Dict, Any, List
from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorCode:
    """Unique error codes for machine-readable error handling"""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_STATUS = "INVALID_STATUS"

    NOT_FOUND = "NOT_FOUND"
    STUDENT_NOT_FOUND = "STUDENT_NOT_FOUND"
    QUESTION_NOT_FOUND = "QUESTION_NOT_FOUND"
    LECTURE_NOT_FOUND = "LECTURE_NOT_FOUND"
    ASSIGNMENT_NOT_FOUND = "ASSIGNMENT_NOT_FOUND"
    COURSE_NOT_FOUND = "COURSE_NOT_FOUND"
    SCHOOL_NOT_FOUND = "SCHOOL_NOT_FOUND"

    INVALID_STATE = "INVALID_STATE"
    ALREADY_COMPLETED = "ALREADY_COMPLETED"

    RATE_LIMITED = "RATE_LIMITED"

    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorResponse(BaseModel):
    """Standard error response model"""
    success: bool = False
    error: str
    message: str
    code: str
    details: Optional[Dict[str, Any]] = None


class APIError(Exception):
    """Base API exception with consistent structure"""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        code: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.code = code
        self.details = details
        super().__init__(message)

    def to_response(self) -> JSONResponse:
        """Convert to FastAPI JSONResponse"""
        return JSONResponse(status_code=self.status_code, content=self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result = {
            "success": False,
            "error": self.error,
            "message": self.message,
            "code": self.code
        }
        if self.details:
            result["details"] = self.details
        return result


class BadRequestError(APIError):
    """400 Bad Request - Invalid input"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_INPUT, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Bad Request",
            message=message,
            code=code,
            details=details
        )


class NotFoundError(APIError):
    """404 Not Found - Resource does not exist"""
    def __init__(self, resource: str, identifier: Any = None, code: str = ErrorCode.NOT_FOUND):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id '{identifier}' not found"
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="Not Found",
            message=message,
            code=code
        )


class InvalidStateError(APIError):
    """400 Bad Request - Invalid state transition"""
    def __init__(self, message: str, code: str = ErrorCode.INVALID_STATE, details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="Invalid State",
            message=message,
            code=code,
            details=details
        )


class AlreadyCompletedError(InvalidStateError):
    """
    400 - The question-completion record is terminal.

    Expected and user-reachable (resubmission), not a system fault.
    """
    def __init__(self, student_id: int, question_id: int, requested_status: Optional[str] = None):
        self.student_id = student_id
        self.question_id = question_id
        super().__init__(
            message="This question has already been completed and cannot be resubmitted",
            code=ErrorCode.ALREADY_COMPLETED,
            details={
                "student_id": student_id,
                "question_id": question_id,
                "requested_status": requested_status,
            }
        )


class InternalError(APIError):
    """500 Internal Server Error - Use sparingly, only for true internal failures"""
    def __init__(self, message: str = "An internal error occurred", log_id: Optional[str] = None):
        details = {"log_id": log_id} if log_id else None
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error="Internal Error",
            message=message,
            code=ErrorCode.INTERNAL_ERROR,
            details=details
        )


class InconsistentCascadeInputError(Exception):
    """
    A lecture has assignments whose questions no longer resolve.

    Never surfaced over HTTP: the cascade logs it and skips the lecture.
    """
    def __init__(self, lecture_id: int, missing_question_ids: List[int]):
        self.lecture_id = lecture_id
        self.missing_question_ids = missing_question_ids
        super().__init__(
            f"Lecture {lecture_id} references unknown questions: {missing_question_ids}"
        )


def get_error_summary() -> Dict[str, Any]:
    """Return summary of error handling system for documentation"""
    return {
        "service": "eduprogress-error-handler",
        "response_structure": {
            "success": "boolean (always false for errors)",
            "error": "string (error type)",
            "message": "string (human-readable)",
            "code": "string (machine-readable)",
            "details": "object (optional)"
        },
        "status_codes": {
            "200": "Successful, valid request",
            "400": "Invalid input or rejected state transition",
            "404": "Resource does not exist",
            "422": "Validation error (Pydantic)",
            "429": "Rate limit exceeded",
            "500": "Internal error (NEVER caused by user input)"
        },
        "error_codes": [
            attr for attr in dir(ErrorCode)
            if not attr.startswith('_')
        ]
    }
