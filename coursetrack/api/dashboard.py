"""
Dashboard and reporting API endpoints
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID
from typing import Optional
import logging

from coursetrack.config import settings
from coursetrack.database import get_db
from coursetrack.schemas.dashboard import (
    StudentDashboard, CourseAnalytics,
    LeaderboardResponse, PlatformOverview, EngagementReport
)
from coursetrack.services.analytics_service import analytics_service

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])
logger = logging.getLogger(__name__)


@router.get("/overview", response_model=PlatformOverview)
async def get_overview(db: Session = Depends(get_db)):
    """Platform-wide course, enrollment and progress counts"""
    return PlatformOverview(**analytics_service.get_overview(db))


@router.get("/student/{student_id}", response_model=StudentDashboard)
async def get_student_dashboard(
    student_id: UUID,
    recent_limit: int = Query(settings.RECENT_ACTIVITY_LIMIT, ge=1, le=50),
    db: Session = Depends(get_db)
):
    """
    Student dashboard
    
    Returns:
    - Summary (courses, completions, average progress, badges, streak)
    - Per-course progress
    - Most recently active courses
    - Progress by category
    """
    logger.info(f"Fetching dashboard for student {student_id}")
    dashboard = analytics_service.get_student_dashboard(db, student_id, recent_limit)
    return StudentDashboard(**dashboard)


@router.get("/course/{course_id}", response_model=CourseAnalytics)
async def get_course_analytics(course_id: UUID, db: Session = Depends(get_db)):
    """
    Course analytics
    
    Returns:
    - Enrollment and completion totals
    - Completion rate per lesson
    - Attempts, average score and pass rate per quiz
    """
    logger.info(f"Fetching analytics for course {course_id}")
    analytics = analytics_service.get_course_analytics(db, course_id)
    return CourseAnalytics(**analytics)


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    limit: int = Query(settings.DEFAULT_LEADERBOARD_LIMIT, ge=1, le=100),
    category: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Students ranked by progress, badges and completed courses"""
    entries = analytics_service.get_leaderboard(db, limit=limit, category=category)
    return LeaderboardResponse(category=category, entries=entries)


@router.get("/reports/engagement", response_model=EngagementReport)
async def get_engagement_report(
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """
    Engagement report
    
    Returns:
    - Completion rate and average progress per course category
    - Students ranked by average progress, then badges
    """
    report = analytics_service.get_engagement_report(db, limit=limit)
    return EngagementReport(**report)
