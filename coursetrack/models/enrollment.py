"""
Enrollment model - which students are enrolled in which course
"""
from sqlalchemy import Column, DateTime, ForeignKey, UniqueConstraint, Uuid
from coursetrack.database import Base
from coursetrack.utils.clock import utcnow
import uuid


class Enrollment(Base):
    """
    Enrollments table - denominator for course completion rates
    """
    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_enrollment_student_course"),
    )
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, nullable=False, index=True)
    course_id = Column(Uuid, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    enrolled_at = Column(DateTime, default=utcnow)
    
    def __repr__(self):
        return f"<Enrollment(student_id={self.student_id}, course_id={self.course_id})>"
