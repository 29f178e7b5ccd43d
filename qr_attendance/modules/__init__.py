# QR Attendance Session Service - Modules Package
"""
Core business logic modules for the QR attendance session service.
"""

__version__ = "1.0.0"
__description__ = "Core modules for QR attendance session functionality"

# Module descriptions
MODULES = {
    'session_store': 'Registry of live attendance sessions with lazy expiry',
    'geo_verifier': 'Haversine distance and classroom radius check',
    'qr_generator': 'Scan payload codec and QR code rendering',
    'session_generator': 'Attendance session creation, expiry and early close',
    'attendance_manager': 'QR scan validation and attendance recording',
    'stats_reporter': 'Read-only session occupancy for the owning professor',
    'database_manager': 'Accounts and attendance record persistence',
    'student_manager': 'Student directory lookups and provisioning',
    'auth_manager': 'Credential checks and route guards',
    'errors': 'Attendance error taxonomy'
}


def get_module_info():
    """Get information about available modules"""
    return MODULES
