"""
Progress tracking service
Runs completion events through load, evaluate and save for one (student, course)
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from coursetrack.config import settings
from coursetrack.exceptions import ConflictError
from coursetrack.models import Course, ProgressRecord
from coursetrack.services.completion_service import CompletionService, completion_service
from coursetrack.services.course_service import CourseService, course_service
from coursetrack.services.progress_store import ProgressStore, progress_store
from coursetrack.utils.cache import CacheService, cache_service

logger = logging.getLogger(__name__)


class ProgressService:
    """
    Entry point for lesson and quiz completion
    
    Each event holds the per-key lock for its whole load-evaluate-save
    cycle. A ConflictError from the store (another process wrote the row
    first) restarts the cycle on fresh data, up to max_retries attempts.
    """
    
    def __init__(
        self,
        store: ProgressStore,
        courses: CourseService,
        evaluator: CompletionService,
        cache: CacheService,
        max_retries: int = 3
    ):
        self.store = store
        self.courses = courses
        self.evaluator = evaluator
        self.cache = cache
        self.max_retries = max(1, max_retries)
    
    def get_progress(self, db: Session, student_id: UUID, course_id: UUID) -> ProgressRecord:
        """Progress for a pair; the first query creates the record"""
        self.courses.get_course(db, course_id)
        
        record = self.store.find(db, student_id, course_id)
        if record is None:
            record = self.store.get_or_create(db, student_id, course_id)
            # A new zero record changes the student's leaderboard average
            self.cache.clear_leaderboards()
        return record
    
    def complete_lesson(
        self,
        db: Session,
        student_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
        time_spent: Optional[int] = None
    ) -> ProgressRecord:
        """
        Mark a lesson as completed for a student
        
        Raises:
            NotFoundError: unknown course, or lesson not in the course
        """
        course = self.courses.get_course(db, course_id)
        self.courses.get_lesson(course, lesson_id)
        
        record, _ = self._evaluate_and_save(
            db,
            student_id,
            course,
            lambda rec: self.evaluator.record_lesson_completion(rec, course, lesson_id, time_spent)
        )
        return record
    
    def complete_quiz(
        self,
        db: Session,
        student_id: UUID,
        course_id: UUID,
        quiz_id: UUID,
        answers: List[Optional[int]]
    ) -> Dict[str, Any]:
        """
        Score a quiz submission and record the attempt
        
        Returns:
            Dictionary with score, correct_answers, total_questions and record
        """
        course = self.courses.get_course(db, course_id)
        self.courses.get_quiz(course, quiz_id)
        
        record, result = self._evaluate_and_save(
            db,
            student_id,
            course,
            lambda rec: self.evaluator.record_quiz_completion(rec, course, quiz_id, answers)
        )
        
        return {
            "score": result.score,
            "correct_answers": result.correct_answers,
            "total_questions": result.total_questions,
            "record": record
        }
    
    def recompute_course_progress(self, db: Session, course: Course) -> int:
        """
        Re-derive overall_progress of every record of a course
        
        Called after the course outline changed. Each record goes through
        the same lock and retry cycle as a completion event.
        
        Returns:
            Number of records whose progress changed
        """
        before = {
            record.student_id: record.overall_progress
            for record in self.store.find_by_course(db, course.id)
        }
        
        changed = 0
        for student_id, previous in before.items():
            record, _ = self._evaluate_and_save(
                db,
                student_id,
                course,
                lambda rec: self.evaluator.recompute_progress(rec, course)
            )
            if record.overall_progress != previous:
                changed += 1
        
        logger.info(f"Recomputed progress for course {course.id}: {changed} of {len(before)} changed")
        return changed
    
    def _evaluate_and_save(
        self,
        db: Session,
        student_id: UUID,
        course: Course,
        evaluate: Callable[[ProgressRecord], Any]
    ) -> Tuple[ProgressRecord, Any]:
        course_id = course.id
        
        with self.store.lock(student_id, course_id):
            for attempt in range(1, self.max_retries + 1):
                record = self.store.get_or_create(db, student_id, course_id)
                result = evaluate(record)
                try:
                    record = self.store.save(db, record)
                except ConflictError:
                    if attempt == self.max_retries:
                        logger.error(
                            f"Giving up on progress update after {attempt} conflicts: "
                            f"student={student_id}, course={course_id}"
                        )
                        raise
                    logger.warning(f"Retrying progress update (attempt {attempt + 1})")
                    continue
                
                self.cache.clear_leaderboards()
                return record, result
        
        raise ConflictError("Progress update failed")


# Global instance
progress_service = ProgressService(
    store=progress_store,
    courses=course_service,
    evaluator=completion_service,
    cache=cache_service,
    max_retries=settings.MAX_CONFLICT_RETRIES
)
