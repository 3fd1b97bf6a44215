"""
Pytest configuration and shared fixtures for the test suite.
Settings are read from the environment at import time, so the test
environment is set up before anything from coursetrack is imported.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ["RATE_LIMIT_PER_HOUR"] = "1000000"
os.environ.pop("REDIS_URL", None)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


# ----- In-memory DB (shared by unit and integration tests) -----
@pytest.fixture
def in_memory_engine():
    """Create an in-memory SQLite engine shared across sessions."""
    from coursetrack.database import Base
    import coursetrack.models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(in_memory_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=in_memory_engine)


@pytest.fixture
def db_session(session_factory):
    """Create an in-memory database session."""
    session = session_factory()
    yield session
    session.close()


def course_payload(
    lessons=4,
    quizzes=((0, 1, 2, 3, 0),),
    category="Mathematics",
    title="Algebra Basics",
    is_published=True,
):
    """Course creation payload; each quiz is given as its correct answers."""
    return {
        "title": title,
        "description": "An introduction to algebraic expressions.",
        "category": category,
        "difficulty": "Beginner",
        "is_published": is_published,
        "lessons": [
            {"title": f"Lesson {i + 1}", "duration": 10} for i in range(lessons)
        ],
        "quizzes": [
            {
                "title": f"Quiz {q + 1}",
                "questions": [
                    {
                        "question": f"Question {i + 1}",
                        "options": ["a", "b", "c", "d"],
                        "correct_answer": answer,
                    }
                    for i, answer in enumerate(answers)
                ],
            }
            for q, answers in enumerate(quizzes)
        ],
    }


@pytest.fixture
def make_course(db_session):
    """Factory persisting a course through the course service."""
    from coursetrack.services.course_service import course_service

    def _make(**kwargs):
        return course_service.create_course(db_session, course_payload(**kwargs))

    return _make


@pytest.fixture
def test_course(make_course):
    """Course with 4 lessons and one 5-question quiz."""
    return make_course()


# ----- API client -----
@pytest.fixture
def override_get_db(session_factory):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    return _get_db


@pytest.fixture
def api_client(override_get_db):
    """FastAPI TestClient with in-memory DB override."""
    from fastapi.testclient import TestClient
    from coursetrack.main import app
    from coursetrack.database import get_db
    from coursetrack.utils.rate_limiter import rate_limiter

    app.dependency_overrides[get_db] = override_get_db
    rate_limiter.reset()
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def build_course_payload():
    return course_payload
