"""
Course outline models - course, lessons and quizzes
"""
from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from coursetrack.database import Base
from coursetrack.models.types import JSONDocument
from coursetrack.utils.clock import utcnow
import uuid


CATEGORIES = (
    "Mathematics",
    "Science",
    "English",
    "History",
    "Physics",
    "Chemistry",
    "Biology",
    "Computer Science",
)

DIFFICULTIES = ("Beginner", "Intermediate", "Advanced")


class Course(Base):
    """
    Courses table - owns the ordered lesson and quiz outline
    """
    __tablename__ = "courses"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(50), nullable=False, index=True)
    difficulty = Column(String(20), default="Beginner")
    is_published = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)
    
    lessons = relationship(
        "Lesson",
        back_populates="course",
        order_by="Lesson.position",
        cascade="all, delete-orphan",
    )
    quizzes = relationship(
        "Quiz",
        back_populates="course",
        order_by="Quiz.position",
        cascade="all, delete-orphan",
    )
    
    # Removed through the ORM; SQLite does not enforce ON DELETE CASCADE
    enrollments = relationship("Enrollment", cascade="all, delete-orphan")
    progress_records = relationship("ProgressRecord", cascade="all, delete-orphan")
    
    def __repr__(self):
        return f"<Course(id={self.id}, title={self.title})>"


class Lesson(Base):
    """
    Lessons table - one entry of a course outline
    """
    __tablename__ = "lessons"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    course_id = Column(Uuid, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text)
    video_url = Column(String(500))
    duration = Column(Integer)  # minutes
    position = Column(Integer, nullable=False, default=0)
    
    course = relationship("Course", back_populates="lessons")
    
    def __repr__(self):
        return f"<Lesson(id={self.id}, title={self.title})>"


class Quiz(Base):
    """
    Quizzes table - questions with their correct answer index
    """
    __tablename__ = "quizzes"
    
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    course_id = Column(Uuid, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    # [{"question", "options", "correct_answer", "explanation"}]
    questions = Column(JSONDocument, nullable=False, default=list)
    
    course = relationship("Course", back_populates="quizzes")
    
    def __repr__(self):
        return f"<Quiz(id={self.id}, course_id={self.course_id}, questions={len(self.questions or [])})>"
