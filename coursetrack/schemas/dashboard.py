"""
Pydantic schemas for dashboard and reporting endpoints
"""
from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class DashboardSummary(BaseModel):
    total_courses: int
    completed_courses: int
    average_progress: int
    total_badges: int
    current_streak: int
    total_quizzes: int
    total_lessons: int


class CourseProgressRow(BaseModel):
    """Progress summary for one course of a student"""
    course_id: UUID
    course_title: Optional[str] = None
    category: Optional[str] = None
    overall_progress: int
    lessons_completed: int
    quizzes_completed: int
    badges: List[str]
    streak_count: int
    last_activity: Optional[datetime] = None


class CategoryProgress(BaseModel):
    category: str
    average_progress: float
    course_count: int


class StudentDashboard(BaseModel):
    """Complete student dashboard"""
    student_id: UUID
    summary: DashboardSummary
    courses: List[CourseProgressRow]
    recent_activity: List[CourseProgressRow]
    category_progress: List[CategoryProgress]


class CourseTotals(BaseModel):
    total_students: int
    students_with_progress: int
    completed_students: int
    average_progress: int
    completion_rate: int


class LessonCompletionRate(BaseModel):
    lesson_index: int
    lesson_id: UUID
    lesson_title: str
    completed_count: int
    completion_rate: int


class QuizPerformance(BaseModel):
    quiz_index: int
    quiz_id: UUID
    quiz_title: str
    attempts: int
    average_score: int
    pass_rate: int


class StudentProgressRow(BaseModel):
    student_id: UUID
    progress: int
    last_activity: Optional[datetime] = None
    badges: int
    streak_count: int


class CourseAnalytics(BaseModel):
    """Analytics for a specific course"""
    course_id: UUID
    course_title: str
    category: str
    difficulty: str
    analytics: CourseTotals
    lesson_completion_rates: List[LessonCompletionRate]
    quiz_performance: List[QuizPerformance]
    students: List[StudentProgressRow]


class LeaderboardEntry(BaseModel):
    rank: int
    student_id: UUID
    average_progress: float
    total_badges: int
    courses_completed: int
    total_courses: int
    max_streak: int
    score: float


class LeaderboardResponse(BaseModel):
    category: Optional[str] = None
    entries: List[LeaderboardEntry]


class PlatformOverview(BaseModel):
    total_courses: int
    published_courses: int
    total_enrollments: int
    students_with_progress: int
    active_students: int
    average_progress: float
    completed_courses: int


class CategoryCompletion(BaseModel):
    category: str
    total_courses: int
    total_enrollments: int
    completions: int
    average_progress: float
    completion_rate: float


class EngagedStudent(BaseModel):
    student_id: UUID
    total_courses: int
    average_progress: float
    total_badges: int
    lessons_completed: int
    quizzes_completed: int
    last_activity: Optional[datetime] = None


class EngagementReport(BaseModel):
    """Completion by category and the most engaged students"""
    category_completion: List[CategoryCompletion]
    top_students: List[EngagedStudent]
