"""
Session Store Module - QR Attendance Session Service

This module holds the registry of live attendance sessions. A session lives
only in memory: it is created by the session generator, receives check-ins
from the attendance manager, and disappears either when its expiry timer fires
or when a lookup notices that its expiry time has passed (lazy expiry).

Features:
- Thread-safe registry keyed by session ID
- Lazy expiry on every lookup
- Idempotent deletion, safe for racing timers and lookups
- Atomic check-and-add for the present set
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set

from qr_attendance.modules.errors import DuplicateSessionError


@dataclass
class AttendanceSession:
    """Data structure for a live attendance session."""
    session_id: str
    subject_code: str
    class_name: str
    class_location: Dict[str, float]
    owner_identity: str
    created_at: float
    expires_at: float
    present: Set[str] = field(default_factory=set)

    def time_remaining(self, now: float) -> float:
        return max(0.0, self.expires_at - now)

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class SessionStore:
    """
    Process-wide registry of active attendance sessions.

    One instance is created by the application factory and injected into the
    managers that need it. All map and set mutations happen under a single
    lock; the lock is never held while calling out to anything else.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """
        Initialize an empty session store.

        Args:
            clock (Callable): Returns the current time in epoch seconds
        """
        self.clock = clock
        self.logger = logging.getLogger(__name__)
        self._sessions: Dict[str, AttendanceSession] = {}
        self._lock = threading.Lock()

    def create(self, session: AttendanceSession) -> AttendanceSession:
        """
        Insert a new session.

        Raises:
            DuplicateSessionError: If a session with the same ID already exists
        """
        with self._lock:
            if session.session_id in self._sessions:
                raise DuplicateSessionError(session_id=session.session_id)
            self._sessions[session.session_id] = session

        self.logger.info(f"Attendance session {session.session_id} registered for {session.class_name} - {session.subject_code}")
        return session

    def get(self, session_id: str) -> Optional[AttendanceSession]:
        """
        Look up a live session.

        An expired session is removed as a side effect and reported as
        missing, whether or not its expiry timer has fired yet.
        """
        with self._lock:
            return self._get_live(session_id)

    def delete(self, session_id: str) -> bool:
        """
        Remove a session if present.

        Returns:
            bool: True if a session was removed, False if it was already gone
        """
        with self._lock:
            removed = self._sessions.pop(session_id, None)

        if removed is not None:
            self.logger.info(f"Attendance session {session_id} removed")
        return removed is not None

    def add_present(self, session_id: str, student_identity: str) -> bool:
        """
        Add a student to the session's present set.

        Returns:
            bool: True if the student was newly added, False if already present

        Raises:
            KeyError: If the session does not exist or has expired
        """
        with self._lock:
            session = self._get_live(session_id)
            if session is None:
                raise KeyError(session_id)
            if student_identity in session.present:
                return False
            session.present.add(student_identity)
            return True

    def remove_present(self, session_id: str, student_identity: str) -> bool:
        """Undo an add_present; a no-op if the session or student is gone."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or student_identity not in session.present:
                return False
            session.present.discard(student_identity)
            return True

    def get_present_students(self, session_id: str) -> Optional[List[str]]:
        """Return a sorted copy of the present set, or None if the session is gone."""
        with self._lock:
            session = self._get_live(session_id)
            if session is None:
                return None
            return sorted(session.present)

    def count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def stats(self) -> Dict[str, Any]:
        """Registry-wide counters for the health endpoint."""
        with self._lock:
            return {
                'active_sessions': len(self._sessions),
                'total_present': sum(len(s.present) for s in self._sessions.values())
            }

    def _get_live(self, session_id: str) -> Optional[AttendanceSession]:
        # caller holds self._lock
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.is_expired(self.clock()):
            del self._sessions[session_id]
            self.logger.info(f"Attendance session {session_id} expired on lookup")
            return None
        return session
