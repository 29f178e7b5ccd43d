"""
Database Manager Module - QR Attendance Session Service

This module handles the durable side of the attendance system: professor and
student accounts, and the attendance records written when a QR scan succeeds.
It wraps SQLite with thread-local connections so concurrent request handlers
each get their own connection.

Features:
- SQLite connection management (one connection per thread)
- Idempotent schema creation
- Attendance record insertion with (session, student) uniqueness
- Student directory lookups by email
- Transaction support
- Optional demo data seeding
"""

import sqlite3
import logging
import json
import os
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from werkzeug.security import generate_password_hash

from qr_attendance.modules.errors import DuplicateKeyError, PersistenceError


class DatabaseManager:
    """
    Persistence layer for accounts and attendance records.
    """

    def __init__(self, db_path, seed_default_data: bool = False):
        """
        Initialize the database manager with the specified database path.

        Args:
            db_path (str): Path to the SQLite database file
            seed_default_data (bool): Insert a demo professor and students
        """
        self.db_path = str(db_path)
        self.seed_default_data = seed_default_data
        self.logger = logging.getLogger(__name__)
        self._local = threading.local()

        directory = os.path.dirname(self.db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self.initialize_database()

    @contextmanager
    def get_connection(self):
        """
        Context manager yielding this thread's connection.

        Yields:
            sqlite3.Connection: Database connection object
        """
        if not hasattr(self._local, 'connection'):
            self._local.connection = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=30.0
            )
            self._local.connection.row_factory = sqlite3.Row
            self._local.connection.execute("PRAGMA foreign_keys = ON")

        try:
            yield self._local.connection
        except Exception as e:
            self._local.connection.rollback()
            self.logger.error(f"Database operation failed: {str(e)}")
            raise

    def initialize_database(self):
        """
        Create all necessary tables. Safe to call repeatedly.
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS professors (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        email VARCHAR(100) UNIQUE NOT NULL,
                        full_name VARCHAR(100) NOT NULL,
                        password_hash VARCHAR(255) NOT NULL,
                        department VARCHAR(100),
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS students (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        email VARCHAR(100) UNIQUE NOT NULL,
                        full_name VARCHAR(100) NOT NULL,
                        roll_no VARCHAR(20) UNIQUE NOT NULL,
                        password_hash VARCHAR(255) NOT NULL,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)

                # one row per successful QR check-in
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS attendance (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        student_email VARCHAR(100) NOT NULL,
                        student_name VARCHAR(100) NOT NULL,
                        roll_no VARCHAR(20),
                        subject_code VARCHAR(20) NOT NULL,
                        class_name VARCHAR(100) NOT NULL,
                        date TIMESTAMP NOT NULL,
                        status VARCHAR(20) DEFAULT 'Present',
                        marked_via VARCHAR(20) DEFAULT 'QR',
                        session_id VARCHAR(64),
                        location TEXT,
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        UNIQUE(session_id, student_email)
                    )
                """)

                cursor.execute("CREATE INDEX IF NOT EXISTS idx_attendance_session ON attendance(session_id)")
                cursor.execute("CREATE INDEX IF NOT EXISTS idx_attendance_student ON attendance(student_email)")

                conn.commit()

                if self.seed_default_data:
                    self._insert_default_data(cursor)
                    conn.commit()

                self.logger.info("Database initialized successfully")

        except Exception as e:
            self.logger.error(f"Failed to initialize database: {str(e)}")
            raise

    def _insert_default_data(self, cursor):
        """
        Insert a demo professor and a few students if the tables are empty.

        Args:
            cursor: Database cursor object
        """
        cursor.execute("SELECT COUNT(*) FROM professors")
        if cursor.fetchone()[0] == 0:
            cursor.execute("""
                INSERT INTO professors (email, full_name, password_hash, department)
                VALUES (?, ?, ?, ?)
            """, ('john.smith@school.edu', 'Dr. John Smith', generate_password_hash('prof123'), 'Computer Science'))

        cursor.execute("SELECT COUNT(*) FROM students")
        if cursor.fetchone()[0] == 0:
            sample_students = [
                ('juan.delacruz@student.edu', 'Juan Dela Cruz', '2024001'),
                ('maria.santos@student.edu', 'Maria Santos', '2024002'),
                ('pedro.reyes@student.edu', 'Pedro Reyes', '2024003')
            ]
            cursor.executemany("""
                INSERT INTO students (email, full_name, roll_no, password_hash)
                VALUES (?, ?, ?, ?)
            """, [(email, name, roll, generate_password_hash('student123'))
                  for email, name, roll in sample_students])

        self.logger.info("Default data inserted successfully")

    def execute_query(self, query, params=None, fetch_all=True):
        """
        Execute a SELECT query and return results.

        Args:
            query (str): SQL query string
            params (tuple): Query parameters
            fetch_all (bool): Whether to fetch all results or just one

        Returns:
            list or dict: Query results
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(query, params or ())

                if fetch_all:
                    return [dict(row) for row in cursor.fetchall()]
                result = cursor.fetchone()
                return dict(result) if result else None

        except sqlite3.Error as e:
            self.logger.error(f"Query execution failed: {str(e)}")
            raise PersistenceError() from e

    def execute_update(self, query, params=None):
        """
        Execute an INSERT, UPDATE, or DELETE query.

        Returns:
            int: Last inserted row ID for INSERT, affected row count otherwise
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(query, params or ())
                conn.commit()

                if query.strip().upper().startswith('INSERT'):
                    return cursor.lastrowid
                return cursor.rowcount

        except sqlite3.IntegrityError as e:
            self.logger.warning(f"Integrity violation: {str(e)}")
            raise DuplicateKeyError() from e
        except sqlite3.Error as e:
            self.logger.error(f"Update execution failed: {str(e)}")
            raise PersistenceError() from e

    @contextmanager
    def transaction(self):
        """
        Context manager for database transactions with automatic rollback on error.

        Yields:
            sqlite3.Connection: Database connection within transaction
        """
        with self.get_connection() as conn:
            try:
                yield conn
                conn.commit()
            except Exception as e:
                conn.rollback()
                self.logger.error(f"Transaction rolled back: {str(e)}")
                raise

    def insert_attendance_record(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Persist one attendance record.

        Args:
            record (dict): student_email, student_name, roll_no, subject_code,
                class_name, date, status, marked_via, session_id, location

        Returns:
            dict: The stored record including its row ID

        Raises:
            DuplicateKeyError: If the student already has a record for the session
            PersistenceError: On any other database failure
        """
        location = record.get('location')
        if location is not None and not isinstance(location, str):
            location = json.dumps(location)

        date = record.get('date') or datetime.now()
        if isinstance(date, datetime):
            date = date.isoformat()

        try:
            with self.transaction() as conn:
                cursor = conn.execute("""
                    INSERT INTO attendance (student_email, student_name, roll_no, subject_code,
                                            class_name, date, status, marked_via, session_id, location)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    record['student_email'],
                    record['student_name'],
                    record.get('roll_no'),
                    record['subject_code'],
                    record['class_name'],
                    date,
                    record.get('status', 'Present'),
                    record.get('marked_via', 'QR'),
                    record.get('session_id'),
                    location
                ))
                record_id = cursor.lastrowid

        except sqlite3.IntegrityError as e:
            raise DuplicateKeyError() from e
        except sqlite3.Error as e:
            raise PersistenceError() from e

        stored = dict(record)
        stored.update({'id': record_id, 'date': date, 'location': location})
        return stored

    def find_student_by_identity(self, email: str) -> Optional[Dict[str, Any]]:
        """Look up a student account by email."""
        return self.execute_query(
            "SELECT id, email, full_name, roll_no FROM students WHERE email = ?",
            (email,),
            fetch_all=False
        )

    def find_students_by_identities(self, emails: Iterable[str]) -> List[Dict[str, Any]]:
        """Look up several students by email, in email order."""
        emails = list(emails)
        if not emails:
            return []
        placeholders = ','.join('?' for _ in emails)
        return self.execute_query(
            f"SELECT id, email, full_name, roll_no FROM students WHERE email IN ({placeholders}) ORDER BY email",
            tuple(emails)
        )

    def get_attendance_for_session(self, session_id: str) -> List[Dict[str, Any]]:
        return self.execute_query(
            "SELECT * FROM attendance WHERE session_id = ? ORDER BY date",
            (session_id,)
        )

    def close_all_connections(self):
        """Close this thread's database connection."""
        try:
            if hasattr(self._local, 'connection'):
                self._local.connection.close()
                del self._local.connection
        except Exception as e:
            self.logger.error(f"Error closing connections: {str(e)}")
