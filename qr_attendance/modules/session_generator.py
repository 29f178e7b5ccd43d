"""
Session Generator Module - QR Attendance Session Service

This module opens attendance windows. A professor supplies the subject, class
and classroom location; the generator registers a short-lived session in the
session store, schedules its removal, and returns the payload (and a rendered
QR code) that students scan to check in.

Features:
- Request validation for subject, class, location and duration
- Cryptographically random session identifiers
- One-shot expiry timers alongside lazy expiry in the store
- Explicit early close by the owning professor
"""

import logging
import math
import threading
import uuid
from numbers import Real
from typing import Any, Callable, Dict, Optional

from qr_attendance.modules.errors import (
    AttendanceError, InvalidRequestError, NotSessionOwnerError, SessionNotFoundError
)
from qr_attendance.modules.geo_verifier import parse_location
from qr_attendance.modules.session_store import AttendanceSession, SessionStore

DEFAULT_DURATION_SECONDS = 60
# one week; expiry timers must stay well under threading.TIMEOUT_MAX
MAX_DURATION_SECONDS = 7 * 24 * 60 * 60


class SessionGenerator:
    """
    Creates attendance sessions and owns their expiry timers.
    """

    def __init__(self, session_store: SessionStore, qr_generator,
                 default_duration: int = DEFAULT_DURATION_SECONDS,
                 timer_factory: Callable = threading.Timer):
        """
        Initialize the session generator.

        Args:
            session_store (SessionStore): Registry the sessions are stored in
            qr_generator (QRGenerator): Payload codec and renderer
            default_duration (int): Session lifetime when none is requested
            timer_factory (Callable): Builds the one-shot expiry timers
        """
        self.store = session_store
        self.qr_generator = qr_generator
        self.default_duration = default_duration
        self.timer_factory = timer_factory
        self.logger = logging.getLogger(__name__)

        self._timers: Dict[str, Any] = {}
        self._timers_lock = threading.Lock()

    def create_session(self, subject_code: Any, class_name: Any, class_location: Any,
                       owner_identity: Any, duration: Any = None) -> AttendanceSession:
        """
        Register a new session and schedule its expiry.

        Returns:
            AttendanceSession: The live session

        Raises:
            InvalidRequestError: If a required field is missing or invalid
        """
        if not _present(subject_code) or not _present(class_name) or not _present(class_location):
            raise InvalidRequestError('Subject code, class name, and location are required')

        location = parse_location(class_location)
        if location is None:
            raise InvalidRequestError('Class location must contain a valid latitude and longitude')

        if not _present(owner_identity):
            raise InvalidRequestError('Session owner is required')

        duration = self._validate_duration(duration)

        now = self.store.clock()
        session = AttendanceSession(
            session_id=str(uuid.uuid4()),
            subject_code=str(subject_code).strip(),
            class_name=str(class_name).strip(),
            class_location={'latitude': location[0], 'longitude': location[1]},
            owner_identity=owner_identity,
            created_at=now,
            expires_at=now + duration
        )

        self.store.create(session)
        self._schedule_expiry(session.session_id, duration)

        self.logger.info(f"QR session {session.session_id} opened by {owner_identity} for {duration}s")
        return session

    def generate_session(self, subject_code: Any, class_name: Any, class_location: Any,
                         owner_identity: Any, duration: Any = None,
                         render_image: bool = True) -> Dict[str, Any]:
        """
        Open a session and build the response shown on the professor's screen.

        Args:
            subject_code: Subject code for the class meeting
            class_name: Class or section name
            class_location: Classroom coordinates
            owner_identity: Authenticated professor identity
            duration: Session lifetime in seconds (defaults to 60)
            render_image (bool): Whether to include a rendered QR code image

        Returns:
            Dict[str, Any]: Generation result
        """
        try:
            duration = self._validate_duration(duration)
            session = self.create_session(subject_code, class_name, class_location,
                                          owner_identity, duration)
        except AttendanceError as e:
            self.logger.warning(f"QR session generation rejected: {e.message}")
            return e.to_dict()
        except Exception as e:
            self.logger.error(f"QR session generation failed: {str(e)}")
            return {
                'success': False,
                'message': 'Failed to generate QR code',
                'error_type': 'system_error'
            }

        payload = self.qr_generator.encode_payload(session)
        result = {
            'success': True,
            'sessionId': session.session_id,
            'qrData': payload,
            'expiryTime': int(session.expires_at * 1000),
            'duration': duration,
            'message': f"QR code generated for {session.class_name} - {session.subject_code}"
        }

        if render_image:
            try:
                result['qrCode'] = self.qr_generator.render_data_url(payload)
            except Exception as e:
                self.logger.error(f"QR code rendering failed for session {session.session_id}: {str(e)}")
                self.close_session(session.session_id, session.owner_identity)
                return {
                    'success': False,
                    'message': 'Failed to generate QR code',
                    'error_type': 'system_error'
                }

        return result

    def close_session(self, session_id: str, owner_identity: Any) -> Dict[str, Any]:
        """
        End a session before its natural expiry.

        Args:
            session_id (str): Session to close
            owner_identity: Identity of the professor asking to close it

        Returns:
            Dict[str, Any]: Close result, including the final attendance count
        """
        try:
            session = self.store.get(session_id)
            if session is None:
                raise SessionNotFoundError()
            if session.owner_identity != owner_identity:
                raise NotSessionOwnerError()

            total_present = len(self.store.get_present_students(session_id) or [])
            self._cancel_timer(session_id)
            self.store.delete(session_id)

            self.logger.info(f"QR session {session_id} closed early by {owner_identity}")
            return {
                'success': True,
                'sessionId': session_id,
                'totalPresent': total_present,
                'message': f"Session closed for {session.class_name} - {session.subject_code}"
            }

        except AttendanceError as e:
            self.logger.warning(f"Close of QR session {session_id} rejected: {e.message}")
            return e.to_dict()

    def pending_timers(self) -> int:
        with self._timers_lock:
            return len(self._timers)

    def shutdown(self):
        """
        Cancel every pending expiry timer.

        create_app registers this with atexit.
        """
        with self._timers_lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def _validate_duration(self, duration: Any) -> float:
        if duration is None or duration == '':
            return self.default_duration

        if isinstance(duration, bool):
            raise InvalidRequestError('Duration must be a positive number of seconds')

        if not isinstance(duration, Real):
            try:
                duration = float(duration)
            except (TypeError, ValueError):
                raise InvalidRequestError('Duration must be a positive number of seconds')

        try:
            finite = math.isfinite(duration)
        except OverflowError:
            finite = False
        if not finite or duration <= 0:
            raise InvalidRequestError('Duration must be a positive number of seconds')

        if duration > MAX_DURATION_SECONDS:
            raise InvalidRequestError(
                f'Duration must not exceed {MAX_DURATION_SECONDS} seconds'
            )

        return duration

    def _schedule_expiry(self, session_id: str, delay: float):
        timer = self.timer_factory(delay, self._expire_session, args=(session_id,))
        timer.daemon = True
        with self._timers_lock:
            self._timers[session_id] = timer
        timer.start()

    def _expire_session(self, session_id: str):
        with self._timers_lock:
            self._timers.pop(session_id, None)
        if self.store.delete(session_id):
            self.logger.info(f"QR session {session_id} expired")

    def _cancel_timer(self, session_id: str):
        with self._timers_lock:
            timer = self._timers.pop(session_id, None)
        if timer is not None:
            timer.cancel()


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True
