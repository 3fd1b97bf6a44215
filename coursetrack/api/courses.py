"""
Course outline and enrollment API endpoints
"""
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List, Optional
import logging

from coursetrack.database import get_db
from coursetrack.models import Course
from coursetrack.schemas.course import (
    CourseCreate, CourseUpdate, CourseResponse, CourseSummary,
    BulkCourseAction, BulkActionResponse, StudentCourse,
    EnrollmentRequest, EnrollmentResponse
)
from coursetrack.services.course_service import course_service
from coursetrack.services.progress_service import progress_service
from coursetrack.services.progress_store import progress_store

router = APIRouter(prefix="/api/courses", tags=["courses"])
logger = logging.getLogger(__name__)


def summarize(course: Course) -> dict:
    return {
        "id": course.id,
        "title": course.title,
        "description": course.description,
        "category": course.category,
        "difficulty": course.difficulty,
        "is_published": course.is_published,
        "lesson_count": len(course.lessons),
        "quiz_count": len(course.quizzes)
    }


@router.post("", response_model=CourseResponse, status_code=201)
async def create_course(course: CourseCreate, db: Session = Depends(get_db)):
    """
    Create a course with its ordered lessons and quizzes
    
    Lesson and quiz order follows the order of the request lists.
    """
    logger.info(f"Creating course: {course.title}")
    created = course_service.create_course(db, course.model_dump())
    return CourseResponse.model_validate(created)


@router.get("", response_model=List[CourseSummary])
async def list_courses(
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=100),
    published_only: bool = True,
    db: Session = Depends(get_db)
):
    """List courses, newest first"""
    courses = course_service.list_courses(
        db,
        category=category,
        difficulty=difficulty,
        search=search,
        published_only=published_only
    )
    return [CourseSummary(**summarize(c)) for c in courses]


@router.post("/bulk-action", response_model=BulkActionResponse)
async def bulk_action(request: BulkCourseAction, db: Session = Depends(get_db)):
    """
    Publish, unpublish or delete several courses
    
    Deleting a course also deletes its enrollments and progress records.
    Unknown ids are skipped; `affected` counts the courses changed.
    """
    logger.info(f"Bulk {request.action} on {len(request.course_ids)} courses")
    affected = course_service.bulk_action(db, request.course_ids, request.action)
    return BulkActionResponse(action=request.action, affected=affected)


@router.get("/student/{student_id}", response_model=List[StudentCourse])
async def list_student_courses(student_id: UUID, db: Session = Depends(get_db)):
    """Courses a student is enrolled in, with their progress"""
    progress = {
        record.course_id: record.overall_progress
        for record in progress_store.find_by_student(db, student_id)
    }
    return [
        StudentCourse(
            **summarize(course),
            enrolled_at=enrollment.enrolled_at,
            overall_progress=progress.get(course.id, 0)
        )
        for course, enrollment in course_service.list_student_courses(db, student_id)
    ]


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course(course_id: UUID, db: Session = Depends(get_db)):
    """Course outline; quiz answers are not included"""
    course = course_service.get_course(db, course_id)
    return CourseResponse.model_validate(course)


@router.put("/{course_id}", response_model=CourseResponse)
async def update_course(course_id: UUID, changes: CourseUpdate, db: Session = Depends(get_db)):
    """
    Update course details and, optionally, its outline
    
    Send existing lesson ids to keep those lessons. When the lesson list
    changes, every student's progress is recomputed against the new
    lesson count.
    """
    course = course_service.update_course(db, course_id, changes.model_dump(exclude_unset=True))
    
    if changes.lessons is not None:
        progress_service.recompute_course_progress(db, course)
    
    return CourseResponse.model_validate(course)


@router.delete("/{course_id}", status_code=204)
async def delete_course(course_id: UUID, db: Session = Depends(get_db)):
    """Delete a course with its enrollments and progress records"""
    course_service.delete_course(db, course_id)
    return Response(status_code=204)


@router.post("/{course_id}/enroll", response_model=EnrollmentResponse)
async def enroll_student(
    course_id: UUID,
    request: EnrollmentRequest,
    db: Session = Depends(get_db)
):
    """Enroll a student in a course (idempotent)"""
    enrollment = course_service.enroll(db, course_id, request.student_id)
    return EnrollmentResponse.model_validate(enrollment)
