"""
Database models package
"""
from coursetrack.models.course import Course, Lesson, Quiz
from coursetrack.models.enrollment import Enrollment
from coursetrack.models.progress_record import ProgressRecord

__all__ = ["Course", "Lesson", "Quiz", "Enrollment", "ProgressRecord"]
