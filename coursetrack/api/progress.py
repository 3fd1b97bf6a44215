"""
Progress tracking API endpoints
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID
import logging

from coursetrack.database import get_db
from coursetrack.schemas.progress import (
    LessonCompletionRequest, QuizSubmission,
    ProgressResponse, QuizResultResponse
)
from coursetrack.services.progress_service import progress_service

router = APIRouter(prefix="/api/progress", tags=["progress"])
logger = logging.getLogger(__name__)


@router.post("/complete-lesson", response_model=ProgressResponse)
async def complete_lesson(request: LessonCompletionRequest, db: Session = Depends(get_db)):
    """
    Mark a lesson as completed
    
    - Completing the same lesson again does not change progress
    - Awards "Course Completed" when every lesson is done
    """
    record = progress_service.complete_lesson(
        db,
        student_id=request.student_id,
        course_id=request.course_id,
        lesson_id=request.lesson_id,
        time_spent=request.time_spent
    )
    return ProgressResponse.model_validate(record)


@router.post("/complete-quiz", response_model=QuizResultResponse)
async def complete_quiz(submission: QuizSubmission, db: Session = Depends(get_db)):
    """
    Submit a quiz and record the score
    
    Scoring: percentage of answers matching the correct option.
    Scores of 80 or more extend the streak; anything lower resets it.
    """
    logger.info(f"Scoring quiz {submission.quiz_id} for student {submission.student_id}")
    
    result = progress_service.complete_quiz(
        db,
        student_id=submission.student_id,
        course_id=submission.course_id,
        quiz_id=submission.quiz_id,
        answers=submission.answers
    )
    
    return QuizResultResponse(
        score=result["score"],
        correct_answers=result["correct_answers"],
        total_questions=result["total_questions"],
        progress=ProgressResponse.model_validate(result["record"])
    )


@router.get("/{student_id}/{course_id}", response_model=ProgressResponse)
async def get_progress(student_id: UUID, course_id: UUID, db: Session = Depends(get_db)):
    """Progress of a student in a course; created empty on first request"""
    record = progress_service.get_progress(db, student_id, course_id)
    return ProgressResponse.model_validate(record)
