"""
Progress record persistence

Load-or-create and whole-record save keyed by (student, course), plus the
per-key lock that serializes read-modify-write cycles in this process.
Across processes the record's version_id column detects lost updates.
"""
import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from coursetrack.config import settings
from coursetrack.exceptions import ConflictError, StorageError
from coursetrack.models import ProgressRecord

logger = logging.getLogger(__name__)


class ProgressStore:
    """Persistence for ProgressRecord rows"""
    
    def __init__(self, lock_timeout: float = 5.0):
        self.lock_timeout = lock_timeout
        self._locks: Dict[Tuple[str, str], threading.Lock] = defaultdict(threading.Lock)
        self._registry_lock = threading.Lock()
    
    @contextmanager
    def lock(self, student_id: UUID, course_id: UUID):
        """
        Hold the (student, course) lock for a load-modify-save cycle
        
        Raises:
            ConflictError: lock not acquired within lock_timeout
        """
        key = (str(student_id), str(course_id))
        with self._registry_lock:
            key_lock = self._locks[key]
        
        if not key_lock.acquire(timeout=self.lock_timeout):
            logger.warning(f"Timed out waiting for progress lock: {key}")
            raise ConflictError("Progress record is busy, retry the request")
        try:
            yield
        finally:
            key_lock.release()
    
    def find(self, db: Session, student_id: UUID, course_id: UUID) -> Optional[ProgressRecord]:
        try:
            return db.query(ProgressRecord).filter(
                ProgressRecord.student_id == student_id,
                ProgressRecord.course_id == course_id
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load progress ({student_id}, {course_id}): {str(e)}")
            raise StorageError("Progress store unavailable") from e
    
    def get_or_create(self, db: Session, student_id: UUID, course_id: UUID) -> ProgressRecord:
        """
        Return the existing record or insert a zero-valued one
        
        A concurrent first insert loses on the unique constraint; the
        loser rolls back and loads the winner's row.
        """
        record = self.find(db, student_id, course_id)
        if record:
            return record
        
        record = ProgressRecord.blank(student_id, course_id)
        try:
            db.add(record)
            db.commit()
            db.refresh(record)
            logger.info(f"Progress record created: student={student_id}, course={course_id}")
            return record
        except IntegrityError:
            db.rollback()
            logger.info(f"Progress record created concurrently, reloading: ({student_id}, {course_id})")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to create progress record: {str(e)}")
            raise StorageError("Progress store unavailable") from e
        
        record = self.find(db, student_id, course_id)
        if record is None:
            raise StorageError("Progress record vanished after concurrent insert")
        return record
    
    def save(self, db: Session, record: ProgressRecord) -> ProgressRecord:
        """
        Persist the whole record
        
        Raises:
            ConflictError: the row changed since it was loaded
            StorageError: database failure
        """
        try:
            db.add(record)
            db.commit()
            db.refresh(record)
            return record
        except StaleDataError as e:
            db.rollback()
            logger.warning(
                f"Concurrent update on progress ({record.student_id}, {record.course_id})"
            )
            raise ConflictError("Progress record was updated concurrently") from e
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to save progress record: {str(e)}")
            raise StorageError("Progress store unavailable") from e
    
    def find_by_student(self, db: Session, student_id: UUID) -> List[ProgressRecord]:
        return self._query(db, ProgressRecord.student_id == student_id)
    
    def find_by_course(self, db: Session, course_id: UUID) -> List[ProgressRecord]:
        return self._query(db, ProgressRecord.course_id == course_id)
    
    def find_all(self, db: Session, course_ids: Optional[Iterable[UUID]] = None) -> List[ProgressRecord]:
        if course_ids is None:
            return self._query(db)
        course_ids = list(course_ids)
        if not course_ids:
            return []
        return self._query(db, ProgressRecord.course_id.in_(course_ids))
    
    def _query(self, db: Session, *criteria) -> List[ProgressRecord]:
        try:
            return db.query(ProgressRecord).filter(*criteria).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to query progress records: {str(e)}")
            raise StorageError("Progress store unavailable") from e


# Global instance
progress_store = ProgressStore(lock_timeout=settings.PROGRESS_LOCK_TIMEOUT)
