"""
ProgressRecord model - per-student, per-course completion state
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, UniqueConstraint, Uuid
from coursetrack.database import Base
from coursetrack.models.types import JSONDocument
from coursetrack.utils.clock import utcnow
import uuid


class ProgressRecord(Base):
    """
    Progress records table - one row per (student, course)
    
    Completion history is stored as JSON documents and the row is always
    written as a whole. version_id guards against lost updates.
    """
    __tablename__ = "progress_records"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_progress_student_course"),
    )
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, nullable=False, index=True)
    course_id = Column(Uuid, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    lessons_completed = Column(JSONDocument, nullable=False, default=list)  # [{lesson_id, completed_at, time_spent}]
    quizzes_completed = Column(JSONDocument, nullable=False, default=list)  # [{quiz_id, score, completed_at, answers}]
    overall_progress = Column(Integer, nullable=False, default=0)  # 0 to 100
    badges = Column(JSONDocument, nullable=False, default=list)  # [{type, earned_at}]
    streak_count = Column(Integer, nullable=False, default=0)
    last_activity = Column(DateTime, default=utcnow, index=True)
    version_id = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    
    __mapper_args__ = {"version_id_col": version_id}
    
    @classmethod
    def blank(cls, student_id, course_id):
        """Zero-valued record, usable before it is flushed"""
        return cls(
            student_id=student_id,
            course_id=course_id,
            lessons_completed=[],
            quizzes_completed=[],
            overall_progress=0,
            badges=[],
            streak_count=0,
            last_activity=utcnow(),
        )
    
    def has_badge(self, badge_type: str) -> bool:
        return any(badge.get("type") == badge_type for badge in self.badges or [])
    
    def __repr__(self):
        return (
            f"<ProgressRecord(student_id={self.student_id}, course_id={self.course_id}, "
            f"progress={self.overall_progress})>"
        )
