"""
Domain error taxonomy

Services raise these; main.py maps them to HTTP responses.
"""


class CourseTrackError(Exception):
    """Base class for domain errors"""

    status_code = 500
    error_code = "internal_error"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(CourseTrackError):
    """Course, lesson or quiz absent where required"""

    status_code = 404
    error_code = "not_found"


class ValidationError(CourseTrackError):
    """Malformed identifier or out-of-range input reaching the core"""

    status_code = 400
    error_code = "validation_error"


class StorageError(CourseTrackError):
    """Persistence backend unavailable or timed out"""

    status_code = 503
    error_code = "storage_unavailable"
    retryable = True


class ConflictError(CourseTrackError):
    """Concurrent update detected; retry the whole evaluate-and-save cycle"""

    status_code = 409
    error_code = "conflict"
    retryable = True
