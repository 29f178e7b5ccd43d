"""
Attendance Manager Module - QR Attendance Session Service

This module turns a scanned QR payload, the student's reported location and
the student's authenticated identity into either a committed attendance
record or a rejected scan with a specific reason.

Validation runs in a fixed order and stops at the first failure:

1. payload and location present
2. payload well formed
3. session alive in the session store (the payload's own expiry is advisory)
4. student within range of the classroom
5. student not already marked for the session (atomic check-and-add)
6. student account exists
7. attendance record written

If step 6 or 7 fails after step 5 succeeded, the student is removed from the
session's present set again so a later scan can retry. A duplicate-key
rejection from the database is the one exception: it means a record already
exists, so the student stays marked.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from qr_attendance.modules.errors import (
    AlreadyMarkedError, AttendanceError, DuplicateKeyError, InvalidRequestError,
    OutOfRangeError, SessionExpiredOrInvalidError, StudentNotFoundError
)
from qr_attendance.modules.geo_verifier import GeoVerifier, parse_location


class AttendanceManager:
    """
    Processes QR attendance scans against live sessions.
    """

    def __init__(self, database_manager, session_store, student_manager,
                 qr_generator, geo_verifier: Optional[GeoVerifier] = None):
        """
        Initialize the attendance manager.

        Args:
            database_manager: Persistence layer for attendance records
            session_store: Registry of live sessions
            student_manager: Student directory
            qr_generator: Payload codec
            geo_verifier (GeoVerifier): Classroom proximity check
        """
        self.db = database_manager
        self.store = session_store
        self.students = student_manager
        self.qr_generator = qr_generator
        self.geo_verifier = geo_verifier or GeoVerifier()
        self.logger = logging.getLogger(__name__)

        self.STATUS_PRESENT = 'Present'
        self.MARKED_VIA_QR = 'QR'

    def process_attendance_scan(self, qr_data: Any, student_location: Any,
                                student_email: Any) -> Dict[str, Any]:
        """
        Process a QR code scan for attendance recording.

        Args:
            qr_data: Scanned payload string
            student_location: Student's reported coordinates
            student_email: Authenticated student identity

        Returns:
            Dict[str, Any]: Scan processing result
        """
        try:
            return self._process(qr_data, student_location, student_email)

        except AttendanceError as e:
            self.logger.warning(f"QR scan rejected for {student_email}: {e.error_type}")
            return e.to_dict()

        except Exception as e:
            self.logger.error(f"QR attendance processing failed for {student_email}: {str(e)}")
            return {
                'success': False,
                'message': 'Failed to mark attendance',
                'error_type': 'system_error'
            }

    def _process(self, qr_data, student_location, student_email) -> Dict[str, Any]:
        if not qr_data or not student_location:
            raise InvalidRequestError('QR data and location are required')
        if not student_email:
            raise InvalidRequestError('Student identity is required')

        payload = self.qr_generator.decode_payload(qr_data)

        session = self.store.get(payload.session_id)
        if session is None:
            raise SessionExpiredOrInvalidError()

        now = self.store.clock()
        if now * 1000 > payload.expires_at:
            self.logger.debug(f"Payload expiry for session {session.session_id} is stale; session is still live")

        if not self.geo_verifier.within_range(student_location, session.class_location):
            raise OutOfRangeError()

        try:
            newly_added = self.store.add_present(session.session_id, student_email)
        except KeyError:
            # expired between the lookup and the check-in
            raise SessionExpiredOrInvalidError()
        if not newly_added:
            raise AlreadyMarkedError()

        try:
            student = self.students.get_student_by_email(student_email)
            if student is None:
                raise StudentNotFoundError()

            location = parse_location(student_location)
            record = self.db.insert_attendance_record({
                'student_email': student_email,
                'student_name': student.full_name,
                'roll_no': student.roll_no,
                'subject_code': session.subject_code,
                'class_name': session.class_name,
                'date': datetime.fromtimestamp(now),
                'status': self.STATUS_PRESENT,
                'marked_via': self.MARKED_VIA_QR,
                'session_id': session.session_id,
                'location': {'latitude': location[0], 'longitude': location[1]}
            })

        except DuplicateKeyError:
            raise AlreadyMarkedError()

        except Exception:
            self.store.remove_present(session.session_id, student_email)
            raise

        self.logger.info(f"Attendance recorded: {student_email} in {session.class_name} - {session.subject_code} (session {session.session_id})")

        return {
            'success': True,
            'message': f"Attendance marked successfully for {session.class_name}",
            'student': student.full_name,
            'subject': session.subject_code,
            'sessionId': session.session_id,
            'recordId': record['id'],
            'timestamp': record['date']
        }
