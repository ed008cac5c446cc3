"""
eduprogress/routes/progress.py
Completion and progress endpoints

Thin HTTP surface over the completion ledger, cascade evaluator and
progress aggregator. Authentication and tenant resolution happen
upstream; callers pass the student id explicitly.

Write endpoints commit once per request: the question write, the lecture
cascade and its assignment upserts land together.
"""
import logging
import uuid

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from eduprogress.config.feature_flags import FeatureFlags
from eduprogress.database import get_db
from eduprogress.errors import APIError, InternalError
from eduprogress.schemas.progress import (
    QuestionStatusRequest,
    QuestionInProgressRequest,
    StandardResponse,
)
from eduprogress.services import completion_ledger, progress_aggregator
from eduprogress.services.cascade_evaluator import recompute_lecture

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress", tags=["Progress"])

limiter = Limiter(key_func=get_remote_address, enabled=FeatureFlags.RATE_LIMIT_ENABLED)


async def _commit_or_rollback(db: AsyncSession, context: str):
    try:
        await db.commit()
    except Exception as e:
        await db.rollback()
        log_id = str(uuid.uuid4())[:8]
        logger.error(f"[{log_id}] Commit failed in {context}: {type(e).__name__}: {str(e)}")
        raise InternalError(log_id=log_id) from e


# ================= WRITE ENDPOINTS =================

@router.post("/questions/status", response_model=StandardResponse)
@limiter.limit("60/minute")
async def mark_question_status(
    request: Request,  # Required by slowapi
    payload: QuestionStatusRequest,
    db: AsyncSession = Depends(get_db)
):
    """
    Set a student's status on a question.

    Marking `completed` runs the lecture cascade; the response tells
    whether any lecture became fully answered.
    """
    try:
        change = await completion_ledger.set_status(
            db, payload.student_id, payload.question_id, payload.status
        )
    except APIError:
        await db.rollback()
        raise

    await _commit_or_rollback(db, "mark_question_status")

    return {
        "success": True,
        "message": "Question completion status updated successfully",
        "data": change.to_dict()
    }


@router.post("/questions/in-progress", response_model=StandardResponse)
@limiter.limit("60/minute")
async def mark_question_in_progress(
    request: Request,  # Required by slowapi
    payload: QuestionInProgressRequest,
    db: AsyncSession = Depends(get_db)
):
    try:
        change = await completion_ledger.mark_in_progress(
            db, payload.student_id, payload.question_id
        )
    except APIError:
        await db.rollback()
        raise

    await _commit_or_rollback(db, "mark_question_in_progress")

    return {
        "success": True,
        "message": "Question marked as in progress",
        "data": change.to_dict()
    }


@router.post("/students/{student_id}/lectures/{lecture_id}/recompute", response_model=StandardResponse)
@limiter.limit("30/minute")
async def recompute_lecture_completion(
    request: Request,  # Required by slowapi
    student_id: int,
    lecture_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Re-run the lecture cascade for one student, e.g. after curriculum edits."""
    try:
        outcome = await recompute_lecture(db, student_id, lecture_id)
    except APIError:
        await db.rollback()
        raise

    await _commit_or_rollback(db, "recompute_lecture_completion")

    return {
        "success": True,
        "message": "Lecture completion recomputed",
        "data": outcome.to_dict()
    }


# ================= READ ENDPOINTS =================

@router.get("/students/{student_id}/questions/{question_id}", response_model=StandardResponse)
async def get_question_status(
    student_id: int,
    question_id: int,
    db: AsyncSession = Depends(get_db)
):
    question_status = await completion_ledger.get_status(db, student_id, question_id)
    message = (
        "Question completion status fetched"
        if question_status.status is not None
        else "Question not attempted yet"
    )
    return {"success": True, "message": message, "data": question_status.to_dict()}


@router.get("/students/{student_id}/questions", response_model=StandardResponse)
async def get_student_questions(
    student_id: int,
    db: AsyncSession = Depends(get_db)
):
    data = await completion_ledger.list_student_question_completions(db, student_id)
    return {"success": True, "message": "Student question completions fetched", "data": data}


@router.get("/students/{student_id}/lectures/{lecture_id}", response_model=StandardResponse)
async def get_lecture_progress(
    student_id: int,
    lecture_id: int,
    db: AsyncSession = Depends(get_db)
):
    progress = await progress_aggregator.lecture_progress(db, student_id, lecture_id)
    message = (
        "Student lecture progress fetched"
        if progress.total_questions
        else "No assignments found for this lecture"
    )
    return {"success": True, "message": message, "data": progress.to_dict()}


@router.get("/students/{student_id}/overall", response_model=StandardResponse)
async def get_overall_progress(
    student_id: int,
    db: AsyncSession = Depends(get_db)
):
    progress = await progress_aggregator.student_overall_progress(db, student_id)
    return {"success": True, "message": "Student overall progress fetched", "data": progress.to_dict()}


@router.get("/students/{student_id}/courses/{course_id}", response_model=StandardResponse)
async def get_course_progress(
    student_id: int,
    course_id: int,
    db: AsyncSession = Depends(get_db)
):
    progress = await progress_aggregator.course_progress(db, student_id, course_id)
    return {"success": True, "message": "Student course progress fetched", "data": progress.to_dict()}


@router.get("/students/{student_id}/assignments", response_model=StandardResponse)
async def get_student_assignments(
    student_id: int,
    db: AsyncSession = Depends(get_db)
):
    data = await progress_aggregator.list_student_assignment_completions(db, student_id)
    return {"success": True, "message": "Student assignment completions fetched", "data": data}


@router.get("/students/{student_id}/assignments/{assignment_id}", response_model=StandardResponse)
async def get_assignment_status(
    student_id: int,
    assignment_id: int,
    db: AsyncSession = Depends(get_db)
):
    data = await progress_aggregator.assignment_completion_status(db, student_id, assignment_id)
    message = (
        "Assignment completion status fetched"
        if data["status"] is not None
        else "Assignment not attempted yet"
    )
    return {"success": True, "message": message, "data": data}


@router.get("/lectures/{lecture_id}/analytics", response_model=StandardResponse)
async def get_lecture_analytics(
    lecture_id: int,
    db: AsyncSession = Depends(get_db)
):
    data = await progress_aggregator.lecture_completion_analytics(db, lecture_id)
    return {"success": True, "message": "Lecture completion analytics fetched", "data": data}


@router.get("/assignments/{assignment_id}/analytics", response_model=StandardResponse)
async def get_assignment_analytics(
    assignment_id: int,
    db: AsyncSession = Depends(get_db)
):
    data = await progress_aggregator.assignment_completion_analytics(db, assignment_id)
    return {"success": True, "message": "Assignment completion analytics fetched", "data": data}


@router.get("/schools/{school_id}", response_model=StandardResponse)
async def get_school_progress(
    school_id: int,
    db: AsyncSession = Depends(get_db)
):
    data = await progress_aggregator.school_progress(db, school_id)
    return {"success": True, "message": "School progress fetched", "data": data}
