"""
HTTP routes for the QR attendance service.

Professors open sessions and watch their stats; students submit scans. The
authenticated identity always comes from the Flask session, never from the
request body.
"""

import logging

from flask import Blueprint, current_app, jsonify, request, session

from qr_attendance.modules.auth_manager import (
    ROLE_PROFESSOR, ROLE_STUDENT, current_identity, login_required, role_required
)
from qr_attendance.modules.errors import status_code_for

logger = logging.getLogger(__name__)

main = Blueprint('main', __name__)


def _components():
    return current_app.extensions['qr_attendance']


def _respond(result, success_status=200):
    if result.get('success'):
        return jsonify(result), success_status

    body = {
        'success': False,
        'error': result.get('message', 'Request failed'),
        'error_type': result.get('error_type', 'system_error')
    }
    return jsonify(body), status_code_for(body['error_type'])


@main.route('/api/health')
def health():
    return jsonify({'status': 'ok', **_components()['session_store'].stats()})


@main.route('/api/auth/login', methods=['POST'])
def login():
    """Authenticate and store the identity in the Flask session"""
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip()
    password = data.get('password') or ''

    if not email or not password:
        return jsonify({'success': False, 'error': 'Please provide both email and password'}), 400

    user = _components()['auth_manager'].authenticate_user(email, password)
    if not user:
        return jsonify({'success': False, 'error': 'Invalid email or password'}), 401

    session.clear()
    session['user_email'] = user['email']
    session['user_type'] = user['user_type']
    session['full_name'] = user['full_name']

    logger.info(f"User {user['email']} logged in")
    return jsonify({'success': True, 'user': user})


@main.route('/api/auth/logout', methods=['POST'])
@login_required
def logout():
    email = session.get('user_email', 'Unknown')
    session.clear()
    logger.info(f"User {email} logged out")
    return jsonify({'success': True, 'message': 'Logged out'})


@main.route('/api/qr-attendance/generate', methods=['POST'])
@role_required(ROLE_PROFESSOR)
def generate_attendance_qr():
    """Open a new attendance session and return its QR code"""
    data = request.get_json(silent=True) or {}

    result = _components()['session_generator'].generate_session(
        subject_code=data.get('subjectCode'),
        class_name=data.get('className'),
        class_location=data.get('classLocation'),
        owner_identity=current_identity(),
        duration=data.get('duration')
    )
    return _respond(result)


@main.route('/api/qr-attendance/mark', methods=['POST'])
@role_required(ROLE_STUDENT)
def mark_attendance_qr():
    """Check a student in from a scanned QR payload"""
    data = request.get_json(silent=True) or {}

    result = _components()['attendance_manager'].process_attendance_scan(
        data.get('qrData'),
        data.get('studentLocation'),
        current_identity()
    )
    return _respond(result)


@main.route('/api/qr-attendance/session/<session_id>')
@role_required(ROLE_PROFESSOR)
def get_qr_session_stats(session_id):
    result = _components()['stats_reporter'].get_session_stats(
        session_id, owner_identity=current_identity()
    )
    return _respond(result)


@main.route('/api/qr-attendance/session/<session_id>/close', methods=['POST'])
@role_required(ROLE_PROFESSOR)
def close_qr_session(session_id):
    result = _components()['session_generator'].close_session(session_id, current_identity())
    return _respond(result)
