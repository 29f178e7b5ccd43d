"""
Session Stats Module - QR Attendance Session Service

Read-only snapshot of a live session for the professor who opened it:
occupancy, time remaining, and the profiles of the students checked in.
"""

import logging
import math
from typing import Any, Dict, Optional

from qr_attendance.modules.errors import (
    AttendanceError, NotSessionOwnerError, SessionNotFoundError
)


class SessionStatsReporter:
    """Reports on live sessions without mutating them."""

    def __init__(self, session_store, student_manager):
        self.store = session_store
        self.students = student_manager
        self.logger = logging.getLogger(__name__)

    def get_session_stats(self, session_id: str,
                          owner_identity: Optional[str] = None) -> Dict[str, Any]:
        """
        Get occupancy and timing for a session.

        Args:
            session_id (str): Session to report on
            owner_identity (str): When given, must match the session owner

        Returns:
            Dict[str, Any]: ``sessionInfo`` and ``presentStudents``, or an error result
        """
        try:
            session = self.store.get(session_id)
            if session is None:
                raise SessionNotFoundError()
            if owner_identity is not None and session.owner_identity != owner_identity:
                raise NotSessionOwnerError()

            present = self.store.get_present_students(session_id) or []
            remaining = session.time_remaining(self.store.clock())

            present_students = [
                profile.to_dict()
                for profile in self.students.get_students_by_emails(present)
            ]

            return {
                'success': True,
                'sessionInfo': {
                    'sessionId': session.session_id,
                    'subjectCode': session.subject_code,
                    'className': session.class_name,
                    'classLocation': session.class_location,
                    'totalPresent': len(present),
                    'timeRemaining': math.ceil(remaining),
                    'isExpired': remaining <= 0
                },
                'presentStudents': present_students
            }

        except AttendanceError as e:
            return e.to_dict()

        except Exception as e:
            self.logger.error(f"QR session stats failed for {session_id}: {str(e)}")
            return {
                'success': False,
                'message': 'Failed to get session stats',
                'error_type': 'system_error'
            }
