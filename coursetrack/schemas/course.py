"""
Pydantic schemas for course outline requests and responses
"""
from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional
from uuid import UUID
from datetime import datetime

from coursetrack.models.course import CATEGORIES, DIFFICULTIES


class QuestionCreate(BaseModel):
    """Multiple choice question; correct_answer indexes options"""
    question: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=2)
    correct_answer: int = Field(..., ge=0)
    explanation: Optional[str] = None
    
    @field_validator("correct_answer")
    @classmethod
    def answer_within_options(cls, value, info):
        options = info.data.get("options")
        if options is not None and value >= len(options):
            raise ValueError("correct_answer must index one of the options")
        return value


class LessonCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: Optional[str] = None
    video_url: Optional[str] = Field(None, max_length=500)
    duration: Optional[int] = Field(None, ge=0, description="Duration in minutes")


class QuizCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    questions: List[QuestionCreate] = []


class CourseCreate(BaseModel):
    """Schema for creating a course with its outline"""
    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10, max_length=1000)
    category: str = Field(..., description=f"One of: {', '.join(CATEGORIES)}")
    difficulty: str = Field("Beginner", description=f"One of: {', '.join(DIFFICULTIES)}")
    is_published: bool = False
    lessons: List[LessonCreate] = []
    quizzes: List[QuizCreate] = []
    
    @field_validator("category")
    @classmethod
    def known_category(cls, value):
        if value not in CATEGORIES:
            raise ValueError("Invalid course category")
        return value
    
    @field_validator("difficulty")
    @classmethod
    def known_difficulty(cls, value):
        if value not in DIFFICULTIES:
            raise ValueError("Difficulty must be Beginner, Intermediate, or Advanced")
        return value


class LessonUpdate(LessonCreate):
    """Outline entry; an id keeps the existing lesson and its completions"""
    id: Optional[UUID] = None


class QuizUpdate(QuizCreate):
    id: Optional[UUID] = None


class CourseUpdate(BaseModel):
    """
    Partial course update
    
    lessons and quizzes, when given, replace the outline in order.
    """
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=1000)
    category: Optional[str] = None
    difficulty: Optional[str] = None
    is_published: Optional[bool] = None
    lessons: Optional[List[LessonUpdate]] = None
    quizzes: Optional[List[QuizUpdate]] = None
    
    @field_validator("category")
    @classmethod
    def known_category(cls, value):
        if value is not None and value not in CATEGORIES:
            raise ValueError("Invalid course category")
        return value
    
    @field_validator("difficulty")
    @classmethod
    def known_difficulty(cls, value):
        if value is not None and value not in DIFFICULTIES:
            raise ValueError("Difficulty must be Beginner, Intermediate, or Advanced")
        return value


class BulkCourseAction(BaseModel):
    action: Literal["publish", "unpublish", "delete"]
    course_ids: List[UUID] = Field(..., min_length=1)


class BulkActionResponse(BaseModel):
    action: str
    affected: int


class LessonOut(BaseModel):
    id: UUID
    title: str
    content: Optional[str] = None
    video_url: Optional[str] = None
    duration: Optional[int] = None
    position: int
    
    class Config:
        from_attributes = True


class QuestionOut(BaseModel):
    """Question as shown to students, without the answer"""
    question: str
    options: List[str]


class QuizOut(BaseModel):
    id: UUID
    title: str
    position: int
    questions: List[QuestionOut]
    
    class Config:
        from_attributes = True


class CourseResponse(BaseModel):
    """Course outline"""
    id: UUID
    title: str
    description: str
    category: str
    difficulty: str
    is_published: bool
    created_at: datetime
    lessons: List[LessonOut]
    quizzes: List[QuizOut]
    
    class Config:
        from_attributes = True


class CourseSummary(BaseModel):
    """Course listing entry"""
    id: UUID
    title: str
    description: str
    category: str
    difficulty: str
    is_published: bool
    lesson_count: int
    quiz_count: int


class EnrollmentRequest(BaseModel):
    student_id: UUID


class EnrollmentResponse(BaseModel):
    course_id: UUID
    student_id: UUID
    enrolled_at: datetime
    
    class Config:
        from_attributes = True


class StudentCourse(CourseSummary):
    """Enrolled course with the student's progress in it"""
    enrolled_at: datetime
    overall_progress: int = 0
