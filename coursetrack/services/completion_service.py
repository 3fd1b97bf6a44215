"""
Lesson and quiz completion evaluation
Derives completion percentage, streak and badges for a progress record
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Optional

from coursetrack.exceptions import NotFoundError, ValidationError
from coursetrack.models import Course, ProgressRecord
from coursetrack.utils.clock import to_iso, utcnow
from coursetrack.utils.rounding import percentage

logger = logging.getLogger(__name__)


class QuizResult(NamedTuple):
    score: int
    correct_answers: int
    total_questions: int


class CompletionService:
    """
    Applies completion events to a ProgressRecord
    
    Rules:
    - Lesson completion is idempotent per lesson id
    - overall_progress = round(100 * completed lessons / course lessons)
    - Quiz score >= STREAK_THRESHOLD extends the streak, anything lower resets it
    - Each badge type is awarded at most once per record
    
    The record's JSON lists are replaced, never mutated in place, so the
    ORM flushes the change.
    """
    
    STREAK_THRESHOLD = 80
    ON_FIRE_STREAK = 5
    PERFECT_SCORE = 100
    
    BADGE_COURSE_COMPLETED = "Course Completed"
    BADGE_PERFECT_SCORE = "Perfect Score"
    BADGE_ON_FIRE = "On Fire"
    
    def record_lesson_completion(
        self,
        record: ProgressRecord,
        course: Course,
        lesson_id: str,
        time_spent: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> ProgressRecord:
        """
        Mark a lesson as completed
        
        Args:
            record: Progress record to update
            course: Course outline the lesson belongs to
            lesson_id: Completed lesson id
            time_spent: Minutes spent on the lesson (defaults to 0)
            now: Event time (defaults to current UTC time)
            
        Returns:
            The updated record
        """
        if time_spent is not None and time_spent < 0:
            raise ValidationError("time_spent must not be negative")
        
        now = now or utcnow()
        lesson_id = str(lesson_id)
        
        already_completed = any(
            entry["lesson_id"] == lesson_id for entry in record.lessons_completed or []
        )
        if not already_completed:
            record.lessons_completed = list(record.lessons_completed or []) + [{
                "lesson_id": lesson_id,
                "completed_at": to_iso(now),
                "time_spent": time_spent or 0
            }]
        
        record.overall_progress = self.course_progress(record, course)
        
        # Duplicate submissions still count as activity
        record.last_activity = now
        
        if record.overall_progress == 100:
            self._award_badge(record, self.BADGE_COURSE_COMPLETED, now)
        
        logger.info(
            f"Lesson completion: student={record.student_id}, course={record.course_id}, "
            f"lesson={lesson_id}, duplicate={already_completed}, progress={record.overall_progress}"
        )
        
        return record
    
    def record_quiz_completion(
        self,
        record: ProgressRecord,
        course: Course,
        quiz_id: str,
        answers: List[Optional[int]],
        now: Optional[datetime] = None
    ) -> QuizResult:
        """
        Score a quiz submission and record the attempt
        
        Retakes are appended as new attempts; history is never overwritten.
        
        Raises:
            NotFoundError: quiz is not part of the course
        """
        quiz = next((q for q in course.quizzes if str(q.id) == str(quiz_id)), None)
        if quiz is None:
            raise NotFoundError("Quiz not found")
        
        now = now or utcnow()
        result = self.score_quiz(quiz.questions or [], answers)
        
        record.quizzes_completed = list(record.quizzes_completed or []) + [{
            "quiz_id": str(quiz.id),
            "score": result.score,
            "completed_at": to_iso(now),
            "answers": list(answers)
        }]
        
        if result.score >= self.STREAK_THRESHOLD:
            record.streak_count = (record.streak_count or 0) + 1
        else:
            record.streak_count = 0
        
        if result.score == self.PERFECT_SCORE:
            self._award_badge(record, self.BADGE_PERFECT_SCORE, now)
        
        if record.streak_count >= self.ON_FIRE_STREAK:
            self._award_badge(record, self.BADGE_ON_FIRE, now)
        
        record.last_activity = now
        
        logger.info(
            f"Quiz completion: student={record.student_id}, quiz={quiz.id}, "
            f"score={result.score}, streak={record.streak_count}"
        )
        
        return result
    
    def recompute_progress(
        self,
        record: ProgressRecord,
        course: Course,
        now: Optional[datetime] = None
    ) -> ProgressRecord:
        """
        Re-derive overall_progress after the course outline changed
        
        Completion history, streak and last_activity are left untouched.
        Reaching 100 this way still awards "Course Completed".
        """
        previous = record.overall_progress
        record.overall_progress = self.course_progress(record, course)
        
        if record.overall_progress == 100:
            self._award_badge(record, self.BADGE_COURSE_COMPLETED, now or utcnow())
        
        if record.overall_progress != previous:
            logger.info(
                f"Progress recomputed: student={record.student_id}, course={record.course_id}, "
                f"{previous} -> {record.overall_progress}"
            )
        return record
    
    def course_progress(self, record: ProgressRecord, course: Course) -> int:
        """Completed lessons as a percentage of the current lesson count, capped at 100"""
        completed = len(record.lessons_completed or [])
        return min(percentage(completed, len(course.lessons)), 100)
    
    def score_quiz(self, questions: List[Dict[str, Any]], answers: List[Optional[int]]) -> QuizResult:
        """
        Compare answers[i] with questions[i]["correct_answer"]
        
        Missing answers count as wrong, extra answers are ignored. A quiz
        without questions scores 0.
        """
        total = len(questions)
        correct = 0
        
        for index, question in enumerate(questions):
            if index < len(answers) and answers[index] is not None \
                    and answers[index] == question.get("correct_answer"):
                correct += 1
        
        return QuizResult(
            score=percentage(correct, total),
            correct_answers=correct,
            total_questions=total
        )
    
    def _award_badge(self, record: ProgressRecord, badge_type: str, now: datetime) -> bool:
        """Append a badge unless the record already holds one of this type"""
        if record.has_badge(badge_type):
            return False
        
        record.badges = list(record.badges or []) + [{
            "type": badge_type,
            "earned_at": to_iso(now)
        }]
        logger.info(f"Badge awarded: student={record.student_id}, badge={badge_type}")
        return True


# Global instance
completion_service = CompletionService()
