"""
Reporting service for student dashboards, course analytics and leaderboards
"""
import logging
from collections import defaultdict
from datetime import timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from coursetrack.models import Course, Enrollment, ProgressRecord
from coursetrack.services.course_service import CourseService, course_service
from coursetrack.services.progress_store import ProgressStore, progress_store
from coursetrack.utils.cache import CacheService, cache_service
from coursetrack.utils.clock import utcnow
from coursetrack.utils.rounding import percentage, round_half_up

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Read-only views built from progress records"""

    PASS_SCORE = 70
    ACTIVE_WINDOW_DAYS = 7

    # Leaderboard composite score weights
    WEIGHT_PROGRESS = 0.4
    WEIGHT_BADGE = 10
    WEIGHT_COMPLETED = 20

    def __init__(self, store: ProgressStore, courses: CourseService, cache: CacheService):
        self.store = store
        self.courses = courses
        self.cache = cache

    def get_student_dashboard(
        self,
        db: Session,
        student_id: UUID,
        recent_limit: int = 5
    ) -> Dict[str, Any]:
        """
        Summarize a student's progress across courses

        Args:
            db: Database session
            student_id: Student UUID
            recent_limit: Number of most recently active courses to return

        Returns:
            Dictionary with summary, per-course rows, recent activity and
            per-category progress
        """
        records = self.store.find_by_student(db, student_id)
        course_map = self._load_courses(db, [r.course_id for r in records])

        total_courses = len(records)
        completed_courses = sum(1 for r in records if r.overall_progress == 100)

        if total_courses:
            average_progress = round_half_up(
                sum(r.overall_progress for r in records) / total_courses
            )
        else:
            average_progress = 0

        rows = [self._course_row(record, course_map.get(record.course_id)) for record in records]

        recent_activity = sorted(
            (row for row in rows if row["last_activity"] is not None),
            key=lambda row: row["last_activity"],
            reverse=True
        )[:recent_limit]

        return {
            "student_id": str(student_id),
            "summary": {
                "total_courses": total_courses,
                "completed_courses": completed_courses,
                "average_progress": average_progress,
                "total_badges": sum(len(r.badges or []) for r in records),
                "current_streak": max((r.streak_count for r in records), default=0),
                "total_quizzes": sum(len(r.quizzes_completed or []) for r in records),
                "total_lessons": sum(len(r.lessons_completed or []) for r in records)
            },
            "courses": rows,
            "recent_activity": recent_activity,
            "category_progress": self._category_progress(rows)
        }

    def _course_row(self, record: ProgressRecord, course: Optional[Course]) -> Dict[str, Any]:
        return {
            "course_id": str(record.course_id),
            "course_title": course.title if course else None,
            "category": course.category if course else None,
            "overall_progress": record.overall_progress,
            "lessons_completed": len(record.lessons_completed or []),
            "quizzes_completed": len(record.quizzes_completed or []),
            "badges": [badge["type"] for badge in record.badges or []],
            "streak_count": record.streak_count,
            "last_activity": record.last_activity
        }

    def _category_progress(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        by_category = defaultdict(list)
        for row in rows:
            if row["category"]:
                by_category[row["category"]].append(row["overall_progress"])

        return [
            {
                "category": category,
                "average_progress": round(sum(values) / len(values), 2),
                "course_count": len(values)
            }
            for category, values in sorted(by_category.items())
        ]

    def get_course_analytics(self, db: Session, course_id: UUID) -> Dict[str, Any]:
        """
        Completion and quiz performance for one course

        Lesson completion rates are relative to enrolled students; quiz
        averages and pass rates count every attempt, retakes included.

        Raises:
            NotFoundError: unknown course
        """
        course = self.courses.get_course(db, course_id)
        records = self.store.find_by_course(db, course_id)

        total_students = db.query(func.count(Enrollment.id)).filter(
            Enrollment.course_id == course_id
        ).scalar() or 0

        students_with_progress = len(records)
        completed_students = sum(1 for r in records if r.overall_progress == 100)

        if students_with_progress:
            average_progress = round_half_up(
                sum(r.overall_progress for r in records) / students_with_progress
            )
        else:
            average_progress = 0

        lesson_completion_rates = []
        for index, lesson in enumerate(course.lessons):
            lesson_id = str(lesson.id)
            completed_count = sum(
                1 for r in records
                if any(entry["lesson_id"] == lesson_id for entry in r.lessons_completed or [])
            )
            lesson_completion_rates.append({
                "lesson_index": index,
                "lesson_id": lesson_id,
                "lesson_title": lesson.title,
                "completed_count": completed_count,
                "completion_rate": percentage(completed_count, total_students)
            })

        quiz_performance = []
        for index, quiz in enumerate(course.quizzes):
            quiz_id = str(quiz.id)
            scores = [
                attempt["score"]
                for r in records
                for attempt in r.quizzes_completed or []
                if attempt["quiz_id"] == quiz_id
            ]
            passed = sum(1 for score in scores if score >= self.PASS_SCORE)
            quiz_performance.append({
                "quiz_index": index,
                "quiz_id": quiz_id,
                "quiz_title": quiz.title,
                "attempts": len(scores),
                "average_score": round_half_up(sum(scores) / len(scores)) if scores else 0,
                "pass_rate": percentage(passed, max(len(scores), 1))
            })

        return {
            "course_id": str(course.id),
            "course_title": course.title,
            "category": course.category,
            "difficulty": course.difficulty,
            "analytics": {
                "total_students": total_students,
                "students_with_progress": students_with_progress,
                "completed_students": completed_students,
                "average_progress": average_progress,
                "completion_rate": percentage(completed_students, total_students)
            },
            "lesson_completion_rates": lesson_completion_rates,
            "quiz_performance": quiz_performance,
            "students": [
                {
                    "student_id": str(r.student_id),
                    "progress": r.overall_progress,
                    "last_activity": r.last_activity,
                    "badges": len(r.badges or []),
                    "streak_count": r.streak_count
                }
                for r in records
            ]
        }

    def get_leaderboard(
        self,
        db: Session,
        limit: int = 10,
        category: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """
        Rank students by composite score

        score = 0.4 * average progress + 10 * badges + 20 * completed courses
        Ties are broken by student id, ascending.

        Args:
            db: Database session
            limit: Maximum number of entries
            category: Only count courses in this category

        Returns:
            Ranked leaderboard entries
        """
        cache_key = self.cache.leaderboard_key(limit, category)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        if category:
            course_ids = [
                row[0] for row in db.query(Course.id).filter(Course.category == category).all()
            ]
            records = self.store.find_all(db, course_ids)
        else:
            records = self.store.find_all(db)

        by_student = defaultdict(list)
        for record in records:
            by_student[str(record.student_id)].append(record)

        entries = []
        for student_id, student_records in by_student.items():
            average_progress = sum(r.overall_progress for r in student_records) / len(student_records)
            total_badges = sum(len(r.badges or []) for r in student_records)
            courses_completed = sum(1 for r in student_records if r.overall_progress >= 100)

            entries.append({
                "student_id": student_id,
                "average_progress": average_progress,
                "total_badges": total_badges,
                "courses_completed": courses_completed,
                "total_courses": len(student_records),
                "max_streak": max(r.streak_count for r in student_records),
                "score": self.composite_score(average_progress, total_badges, courses_completed)
            })

        entries.sort(key=lambda e: (-e["score"], e["student_id"]))

        leaderboard = []
        for rank, entry in enumerate(entries[:limit], start=1):
            entry["rank"] = rank
            entry["average_progress"] = round(entry["average_progress"], 1)
            entry["score"] = round(entry["score"], 2)
            leaderboard.append(entry)

        self.cache.set(cache_key, leaderboard)

        return leaderboard

    def composite_score(self, average_progress: float, total_badges: int, courses_completed: int) -> float:
        return (
            self.WEIGHT_PROGRESS * average_progress
            + self.WEIGHT_BADGE * total_badges
            + self.WEIGHT_COMPLETED * courses_completed
        )

    def get_overview(self, db: Session) -> Dict[str, Any]:
        """Platform-wide counts for the admin dashboard"""
        active_since = utcnow() - timedelta(days=self.ACTIVE_WINDOW_DAYS)

        total_courses = db.query(func.count(Course.id)).scalar() or 0
        published_courses = db.query(func.count(Course.id)).filter(
            Course.is_published.is_(True)
        ).scalar() or 0
        total_enrollments = db.query(func.count(Enrollment.id)).scalar() or 0
        students_with_progress = db.query(
            func.count(func.distinct(ProgressRecord.student_id))
        ).scalar() or 0
        active_students = db.query(
            func.count(func.distinct(ProgressRecord.student_id))
        ).filter(ProgressRecord.last_activity >= active_since).scalar() or 0
        average_progress = db.query(func.avg(ProgressRecord.overall_progress)).scalar()
        completed_records = db.query(func.count(ProgressRecord.id)).filter(
            ProgressRecord.overall_progress >= 100
        ).scalar() or 0

        return {
            "total_courses": total_courses,
            "published_courses": published_courses,
            "total_enrollments": total_enrollments,
            "students_with_progress": students_with_progress,
            "active_students": active_students,
            "average_progress": round(float(average_progress), 2) if average_progress is not None else 0.0,
            "completed_courses": completed_records
        }

    def get_engagement_report(self, db: Session, limit: int = 10) -> Dict[str, Any]:
        """
        Completion by course category and the most engaged students

        Category completion rate is completed records over enrollments in
        that category. Students are ranked by average progress, then by
        badges, then by student id.
        """
        courses = db.query(Course).all()
        enrollment_counts = dict(
            db.query(Enrollment.course_id, func.count(Enrollment.id))
            .group_by(Enrollment.course_id)
            .all()
        )
        records = self.store.find_all(db)
        category_of = {course.id: course.category for course in courses}

        categories = defaultdict(lambda: {"total_courses": 0, "total_enrollments": 0, "progress": []})
        for course in courses:
            bucket = categories[course.category]
            bucket["total_courses"] += 1
            bucket["total_enrollments"] += enrollment_counts.get(course.id, 0)
        for record in records:
            category = category_of.get(record.course_id)
            if category:
                categories[category]["progress"].append(record.overall_progress)

        category_completion = []
        for category, bucket in sorted(categories.items()):
            progress = bucket["progress"]
            completions = sum(1 for value in progress if value >= 100)
            enrollments = bucket["total_enrollments"]
            category_completion.append({
                "category": category,
                "total_courses": bucket["total_courses"],
                "total_enrollments": enrollments,
                "completions": completions,
                "average_progress": round(sum(progress) / len(progress), 2) if progress else 0.0,
                "completion_rate": round(100 * completions / enrollments, 2) if enrollments else 0.0
            })

        by_student = defaultdict(list)
        for record in records:
            by_student[str(record.student_id)].append(record)

        students = []
        for student_id, student_records in by_student.items():
            students.append({
                "student_id": student_id,
                "total_courses": len(student_records),
                "average_progress": sum(r.overall_progress for r in student_records) / len(student_records),
                "total_badges": sum(len(r.badges or []) for r in student_records),
                "lessons_completed": sum(len(r.lessons_completed or []) for r in student_records),
                "quizzes_completed": sum(len(r.quizzes_completed or []) for r in student_records),
                "last_activity": max(
                    (r.last_activity for r in student_records if r.last_activity is not None),
                    default=None
                )
            })

        students.sort(key=lambda s: (-s["average_progress"], -s["total_badges"], s["student_id"]))
        top_students = students[:limit]
        for student in top_students:
            student["average_progress"] = round(student["average_progress"], 1)

        return {
            "category_completion": category_completion,
            "top_students": top_students
        }

    def _load_courses(self, db: Session, course_ids: List[UUID]) -> Dict[UUID, Course]:
        if not course_ids:
            return {}
        courses = db.query(Course).filter(Course.id.in_(course_ids)).all()
        return {course.id: course for course in courses}


# Global instance
analytics_service = AnalyticsService(
    store=progress_store,
    courses=course_service,
    cache=cache_service
)
