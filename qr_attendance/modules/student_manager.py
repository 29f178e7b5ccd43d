"""
Student Manager Module - QR Attendance Session Service

This module is the student directory used by the attendance flow. It resolves
authenticated student emails to display profiles and provisions student
accounts.

Features:
- Profile lookup by email (single and bulk)
- Student account creation with validation
- Password hashing via werkzeug
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from werkzeug.security import generate_password_hash

from qr_attendance.modules.errors import DuplicateKeyError

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


@dataclass
class StudentProfile:
    """Data structure for the public part of a student account."""
    id: Optional[int]
    email: str
    full_name: str
    roll_no: str

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'StudentProfile':
        return cls(
            id=row.get('id'),
            email=row['email'],
            full_name=row['full_name'],
            roll_no=row['roll_no']
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.full_name,
            'email': self.email,
            'rollNo': self.roll_no
        }


class StudentManager:
    """
    Student directory backed by the database manager.
    """

    def __init__(self, database_manager):
        """
        Initialize the student manager with database connection.

        Args:
            database_manager: Database manager instance
        """
        self.db = database_manager
        self.logger = logging.getLogger(__name__)

    def get_student_by_email(self, email: str) -> Optional[StudentProfile]:
        """
        Get a student profile by email.

        Persistence failures propagate to the caller; only a missing account
        returns None.
        """
        if not email:
            return None
        row = self.db.find_student_by_identity(email)
        return StudentProfile.from_row(row) if row else None

    def get_students_by_emails(self, emails: Iterable[str]) -> List[StudentProfile]:
        """Resolve several emails at once; unknown emails are skipped."""
        rows = self.db.find_students_by_identities(sorted(set(emails)))
        return [StudentProfile.from_row(row) for row in rows]

    def create_student(self, student_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a new student account.

        Args:
            student_data (Dict[str, Any]): email, full_name, roll_no, password

        Returns:
            Dict[str, Any]: Creation result
        """
        try:
            required_fields = ['email', 'full_name', 'roll_no', 'password']
            for field in required_fields:
                if not student_data.get(field):
                    return {
                        'success': False,
                        'error': f'Missing required field: {field}'
                    }

            validation_result = self._validate_student_data(student_data)
            if not validation_result['valid']:
                return {
                    'success': False,
                    'error': validation_result['error']
                }

            student_id = self.db.execute_update(
                """INSERT INTO students (email, full_name, roll_no, password_hash)
                   VALUES (?, ?, ?, ?)""",
                (
                    student_data['email'].strip().lower(),
                    student_data['full_name'].strip(),
                    str(student_data['roll_no']).strip(),
                    generate_password_hash(student_data['password'])
                )
            )

            self.logger.info(f"Student created successfully: {student_data['email']} (ID: {student_id})")
            return {
                'success': True,
                'student_id': student_id,
                'message': 'Student created successfully'
            }

        except DuplicateKeyError:
            return {
                'success': False,
                'error': 'Email or roll number already exists'
            }
        except Exception as e:
            self.logger.error(f"Student creation failed for {student_data.get('email', 'unknown')}: {str(e)}")
            return {
                'success': False,
                'error': 'Failed to create student record'
            }

    def _validate_student_data(self, student_data: Dict[str, Any]) -> Dict[str, Any]:
        if not EMAIL_PATTERN.match(student_data['email'].strip()):
            return {'valid': False, 'error': 'Invalid email address format'}

        if len(student_data['full_name'].strip()) < 2:
            return {'valid': False, 'error': 'Full name must be at least 2 characters'}

        if not re.match(r'^\d{1,10}$', str(student_data['roll_no']).strip()):
            return {'valid': False, 'error': 'Roll number must be 1-10 digits'}

        return {'valid': True}
