"""
Pydantic schemas for progress tracking requests and responses
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class LessonCompletionRequest(BaseModel):
    """Schema for marking a lesson as completed"""
    student_id: UUID
    course_id: UUID
    lesson_id: UUID
    time_spent: Optional[int] = Field(None, ge=0, description="Time spent in minutes")


class QuizSubmission(BaseModel):
    """Schema for quiz submission; answers[i] is the chosen option of question i"""
    student_id: UUID
    course_id: UUID
    quiz_id: UUID
    answers: List[Optional[int]]


class LessonEntry(BaseModel):
    lesson_id: str
    completed_at: datetime
    time_spent: int = 0


class QuizAttemptEntry(BaseModel):
    quiz_id: str
    score: int
    completed_at: datetime
    answers: List[Optional[int]]


class BadgeEntry(BaseModel):
    type: str
    earned_at: datetime


class ProgressResponse(BaseModel):
    """Full progress record for a student and course"""
    id: UUID
    student_id: UUID
    course_id: UUID
    lessons_completed: List[LessonEntry]
    quizzes_completed: List[QuizAttemptEntry]
    overall_progress: int = Field(..., ge=0, le=100)
    badges: List[BadgeEntry]
    streak_count: int
    last_activity: Optional[datetime] = None
    
    class Config:
        from_attributes = True


class QuizResultResponse(BaseModel):
    """Response after quiz scoring"""
    score: int
    correct_answers: int
    total_questions: int
    progress: ProgressResponse
