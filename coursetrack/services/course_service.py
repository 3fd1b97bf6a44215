"""
Course outline service - course authoring reads/writes and enrollment
"""
import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from coursetrack.exceptions import NotFoundError, StorageError, ValidationError
from coursetrack.models import Course, Enrollment, Lesson, Quiz
from coursetrack.utils.cache import CacheService, cache_service

logger = logging.getLogger(__name__)


class CourseService:
    """Service for course outlines and enrollments"""
    
    BULK_ACTIONS = ("publish", "unpublish", "delete")
    
    def __init__(self, cache: Optional[CacheService] = None):
        self.cache = cache
    
    def get_course(self, db: Session, course_id: UUID) -> Course:
        """
        Load a course outline
        
        Raises:
            NotFoundError: no course with this id
        """
        try:
            course = db.query(Course).filter(Course.id == course_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load course {course_id}: {str(e)}")
            raise StorageError("Course store unavailable") from e
        
        if not course:
            raise NotFoundError("Course not found")
        return course
    
    def get_lesson(self, course: Course, lesson_id) -> Lesson:
        lesson = next((l for l in course.lessons if str(l.id) == str(lesson_id)), None)
        if lesson is None:
            raise NotFoundError("Lesson not found")
        return lesson
    
    def get_quiz(self, course: Course, quiz_id) -> Quiz:
        quiz = next((q for q in course.quizzes if str(q.id) == str(quiz_id)), None)
        if quiz is None:
            raise NotFoundError("Quiz not found")
        return quiz
    
    def create_course(self, db: Session, data: dict) -> Course:
        """
        Create a course together with its ordered lessons and quizzes
        
        Args:
            db: Database session
            data: Validated CourseCreate payload as a dict
            
        Returns:
            The persisted course
        """
        course = Course(
            title=data["title"],
            description=data["description"],
            category=data["category"],
            difficulty=data.get("difficulty") or "Beginner",
            is_published=data.get("is_published", False)
        )
        
        for position, entry in enumerate(data.get("lessons", [])):
            lesson = self._build_lesson(entry)
            lesson.position = position
            course.lessons.append(lesson)
        
        for position, entry in enumerate(data.get("quizzes", [])):
            quiz = self._build_quiz(entry)
            quiz.position = position
            course.quizzes.append(quiz)
        
        try:
            db.add(course)
            db.commit()
            db.refresh(course)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create course: {str(e)}")
            raise StorageError("Failed to store course") from e
        
        logger.info(
            f"Course created: {course.id} ({len(course.lessons)} lessons, {len(course.quizzes)} quizzes)"
        )
        return course
    
    def update_course(self, db: Session, course_id: UUID, changes: dict) -> Course:
        """
        Apply a partial update to a course
        
        When "lessons" or "quizzes" is present the outline is replaced by
        that list, in order. Entries carrying the id of an existing entry
        keep it (and the progress that refers to it); entries without an id
        are added; existing entries left out are removed.
        
        Args:
            db: Database session
            course_id: Course to update
            changes: Validated CourseUpdate payload, unset fields excluded
            
        Raises:
            NotFoundError: unknown course
            ValidationError: an entry id that belongs to no entry of this course
        """
        course = self.get_course(db, course_id)
        
        for field in ("title", "description", "category", "difficulty", "is_published"):
            if changes.get(field) is not None:
                setattr(course, field, changes[field])
        
        try:
            if changes.get("lessons") is not None:
                course.lessons = self._merge_outline(
                    course.lessons, changes["lessons"], self._build_lesson, self._apply_lesson, "Lesson"
                )
            if changes.get("quizzes") is not None:
                course.quizzes = self._merge_outline(
                    course.quizzes, changes["quizzes"], self._build_quiz, self._apply_quiz, "Quiz"
                )
        except ValidationError:
            db.rollback()
            raise
        
        try:
            db.commit()
            db.refresh(course)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to update course {course_id}: {str(e)}")
            raise StorageError("Failed to store course") from e
        
        logger.info(
            f"Course updated: {course.id} ({len(course.lessons)} lessons, {len(course.quizzes)} quizzes)"
        )
        return course
    
    def _merge_outline(self, existing, entries, build, apply, label):
        by_id = {str(item.id): item for item in existing}
        merged = []
        for position, entry in enumerate(entries):
            entry_id = entry.get("id")
            if entry_id is None:
                item = build(entry)
            else:
                item = by_id.get(str(entry_id))
                if item is None:
                    raise ValidationError(f"{label} {entry_id} is not part of this course")
                apply(item, entry)
            item.position = position
            merged.append(item)
        return merged
    
    def _build_lesson(self, data: dict) -> Lesson:
        lesson = Lesson()
        self._apply_lesson(lesson, data)
        return lesson
    
    def _apply_lesson(self, lesson: Lesson, data: dict):
        lesson.title = data["title"]
        lesson.content = data.get("content")
        lesson.video_url = data.get("video_url")
        lesson.duration = data.get("duration")
    
    def _build_quiz(self, data: dict) -> Quiz:
        quiz = Quiz()
        self._apply_quiz(quiz, data)
        return quiz
    
    def _apply_quiz(self, quiz: Quiz, data: dict):
        quiz.title = data["title"]
        quiz.questions = list(data.get("questions", []))
    
    def delete_course(self, db: Session, course_id: UUID) -> None:
        """
        Delete a course with its outline, enrollments and progress records
        
        Raises:
            NotFoundError: unknown course
        """
        course = self.get_course(db, course_id)
        self._delete(db, [course])
        logger.info(f"Course deleted: {course_id}")
    
    def bulk_action(self, db: Session, course_ids: List[UUID], action: str) -> int:
        """
        Publish, unpublish or delete several courses at once
        
        Unknown ids are skipped.
        
        Returns:
            Number of courses affected
        """
        if action not in self.BULK_ACTIONS:
            raise ValidationError(f"Unknown bulk action: {action}")
        
        try:
            courses = db.query(Course).filter(Course.id.in_(list(course_ids))).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load courses for bulk {action}: {str(e)}")
            raise StorageError("Course store unavailable") from e
        
        if action == "delete":
            self._delete(db, courses)
        else:
            for course in courses:
                course.is_published = action == "publish"
            try:
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Bulk {action} failed: {str(e)}")
                raise StorageError("Failed to store courses") from e
        
        logger.info(f"Bulk {action} applied to {len(courses)} of {len(course_ids)} courses")
        return len(courses)
    
    def _delete(self, db: Session, courses: List[Course]):
        try:
            for course in courses:
                db.delete(course)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to delete courses: {str(e)}")
            raise StorageError("Failed to delete course") from e
        
        # Deleted progress records drop out of every leaderboard
        if courses and self.cache:
            self.cache.clear_leaderboards()
    
    def list_courses(
        self,
        db: Session,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
        search: Optional[str] = None,
        published_only: bool = True
    ) -> List[Course]:
        """List courses, newest first"""
        query = db.query(Course)
        
        if published_only:
            query = query.filter(Course.is_published.is_(True))
        if category:
            query = query.filter(Course.category == category)
        if difficulty:
            query = query.filter(Course.difficulty == difficulty)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Course.title.ilike(pattern), Course.description.ilike(pattern)))
        
        return query.order_by(Course.created_at.desc()).all()
    
    def enroll(self, db: Session, course_id: UUID, student_id: UUID) -> Enrollment:
        """
        Enroll a student; enrolling twice returns the existing enrollment
        """
        self.get_course(db, course_id)
        
        enrollment = self._find_enrollment(db, course_id, student_id)
        if enrollment:
            return enrollment
        
        enrollment = Enrollment(course_id=course_id, student_id=student_id)
        try:
            db.add(enrollment)
            db.commit()
            db.refresh(enrollment)
        except IntegrityError:
            # Concurrent enrollment won the insert
            db.rollback()
            enrollment = self._find_enrollment(db, course_id, student_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to enroll student {student_id}: {str(e)}")
            raise StorageError("Failed to store enrollment") from e
        
        logger.info(f"Student {student_id} enrolled in course {course_id}")
        return enrollment
    
    def list_student_courses(self, db: Session, student_id: UUID) -> List[Tuple[Course, Enrollment]]:
        """Courses a student is enrolled in, most recent enrollment first"""
        try:
            rows = db.query(Course, Enrollment).join(
                Enrollment, Enrollment.course_id == Course.id
            ).filter(
                Enrollment.student_id == student_id
            ).order_by(Enrollment.enrolled_at.desc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to list courses of student {student_id}: {str(e)}")
            raise StorageError("Course store unavailable") from e
        return [(course, enrollment) for course, enrollment in rows]
    
    def _find_enrollment(self, db: Session, course_id: UUID, student_id: UUID) -> Optional[Enrollment]:
        return db.query(Enrollment).filter(
            Enrollment.course_id == course_id,
            Enrollment.student_id == student_id
        ).first()


# Global instance
course_service = CourseService(cache=cache_service)
