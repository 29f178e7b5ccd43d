"""
Errors Module - QR Attendance Session Service

Exception taxonomy shared by the session, scan and persistence managers.
Every error carries a stable ``error_type`` slug, an HTTP status code and a
user-facing default message so the managers can turn any rejection into the
``{'success': False, 'message': ..., 'error_type': ...}`` result shape.
"""

from typing import Any, Dict, Optional


class AttendanceError(Exception):
    """Base class for all attendance-session errors."""

    error_type = 'attendance_error'
    status_code = 400
    default_message = 'Attendance request failed'

    def __init__(self, message: Optional[str] = None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'success': False,
            'message': self.message,
            'error_type': self.error_type
        }
        if self.details:
            result['details'] = self.details
        return result


class InvalidRequestError(AttendanceError):
    error_type = 'invalid_request'
    default_message = 'Required fields are missing or invalid'


class MalformedPayloadError(AttendanceError):
    error_type = 'malformed_payload'
    default_message = 'Invalid QR code'


class SessionExpiredOrInvalidError(AttendanceError):
    error_type = 'session_expired'
    default_message = 'Invalid or expired QR code'


class OutOfRangeError(AttendanceError):
    error_type = 'out_of_range'
    default_message = 'You must be in the classroom to mark attendance'


class AlreadyMarkedError(AttendanceError):
    error_type = 'already_marked'
    status_code = 409
    default_message = 'Attendance already marked for this session'


class StudentNotFoundError(AttendanceError):
    error_type = 'student_not_found'
    status_code = 404
    default_message = 'Student not found'


class DuplicateSessionError(AttendanceError):
    error_type = 'duplicate_session'
    status_code = 500
    default_message = 'Attendance session already exists'


class SessionNotFoundError(AttendanceError):
    error_type = 'session_not_found'
    status_code = 404
    default_message = 'Session not found or expired'


class NotSessionOwnerError(AttendanceError):
    error_type = 'not_session_owner'
    status_code = 403
    default_message = 'Only the professor who created this session can access it'


class DuplicateKeyError(AttendanceError):
    """Raised by the persistence layer when a (session, student) row already exists."""

    error_type = 'duplicate_record'
    status_code = 409
    default_message = 'Attendance record already exists'


class PersistenceError(AttendanceError):
    error_type = 'database_error'
    status_code = 500
    default_message = 'Failed to mark attendance'


def status_code_for(error_type: str) -> int:
    """HTTP status for an ``error_type`` slug; unknown slugs are server errors."""
    for cls in _all_error_classes(AttendanceError):
        if cls.error_type == error_type:
            return cls.status_code
    return 500


def _all_error_classes(base):
    yield base
    for sub in base.__subclasses__():
        yield from _all_error_classes(sub)
