"""
Authentication Manager Module - QR Attendance Session Service

This module supplies authenticated identities to the attendance flow. It
checks email/password credentials against professor and student accounts
and provides the route decorators that read the logged-in identity from the
Flask session. The attendance managers never authenticate anyone themselves;
they receive the email this module vouches for.

Features:
- Password verification via werkzeug hashes
- Professor and student roles
- login_required / role_required decorators for Flask views
- Professor account provisioning
"""

import logging
from functools import wraps
from typing import Any, Dict, Optional

from flask import jsonify, session
from werkzeug.security import check_password_hash, generate_password_hash

from qr_attendance.modules.errors import DuplicateKeyError

ROLE_PROFESSOR = 'professor'
ROLE_STUDENT = 'student'


class AuthManager:
    """
    Credential checks for professors and students.
    """

    def __init__(self, database_manager):
        """
        Initialize the authentication manager with database connection.

        Args:
            database_manager: Database manager instance
        """
        self.db = database_manager
        self.logger = logging.getLogger(__name__)

    def authenticate_user(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        """
        Authenticate a professor or student by email and password.

        Returns:
            Dict[str, Any]: email, full_name and user_type if authenticated, None otherwise
        """
        if not email or not password:
            return None

        email = email.strip().lower()
        try:
            for table, user_type in (('professors', ROLE_PROFESSOR), ('students', ROLE_STUDENT)):
                user = self.db.execute_query(
                    f"SELECT email, full_name, password_hash FROM {table} WHERE email = ?",
                    (email,),
                    fetch_all=False
                )
                if user is None:
                    continue

                if not check_password_hash(user['password_hash'], password):
                    self.logger.warning(f"Authentication failed - invalid password: {email}")
                    return None

                self.logger.info(f"User authenticated successfully: {email} ({user_type})")
                return {
                    'email': user['email'],
                    'full_name': user['full_name'],
                    'user_type': user_type
                }

            self.logger.warning(f"Authentication failed - user not found: {email}")
            return None

        except Exception as e:
            self.logger.error(f"Authentication error for user {email}: {str(e)}")
            return None

    def create_professor(self, email: str, full_name: str, password: str,
                         department: str = None) -> Dict[str, Any]:
        """Provision a professor account."""
        if not email or not full_name or not password:
            return {'success': False, 'error': 'Email, full name, and password are required'}

        try:
            professor_id = self.db.execute_update(
                """INSERT INTO professors (email, full_name, password_hash, department)
                   VALUES (?, ?, ?, ?)""",
                (email.strip().lower(), full_name.strip(), generate_password_hash(password), department)
            )
            self.logger.info(f"Professor created successfully: {email}")
            return {'success': True, 'professor_id': professor_id}

        except DuplicateKeyError:
            return {'success': False, 'error': 'Email already exists'}


def current_identity() -> Optional[str]:
    return session.get('user_email')


def login_required(f):
    """Decorator to require a logged-in user for JSON routes"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_email' not in session:
            return jsonify({
                'success': False,
                'error': 'Unauthorized: please log in',
                'error_type': 'unauthorized'
            }), 401
        return f(*args, **kwargs)
    return decorated_function


def role_required(role: str):
    """Decorator to require a specific user type for JSON routes"""
    def decorator(f):
        @wraps(f)
        @login_required
        def decorated_function(*args, **kwargs):
            if session.get('user_type') != role:
                return jsonify({
                    'success': False,
                    'error': f'Only a {role} can perform this action',
                    'error_type': 'forbidden'
                }), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator
