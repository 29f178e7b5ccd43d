# QR Attendance Session Service - App Package
"""
Main application package for the QR attendance session service.
Professors open short-lived, location-bound attendance sessions shown as QR
codes; students scan them from the classroom to check in.
"""

__version__ = "1.0.0"
__description__ = "Location-verified QR attendance sessions over a Flask JSON API"

import atexit
import logging
import threading
import time

from flask import Flask
from flask_cors import CORS

from .modules.attendance_manager import AttendanceManager
from .modules.auth_manager import AuthManager
from .modules.database_manager import DatabaseManager
from .modules.geo_verifier import GeoVerifier
from .modules.qr_generator import QRGenerator
from .modules.session_generator import SessionGenerator
from .modules.session_store import SessionStore
from .modules.stats_reporter import SessionStatsReporter
from .modules.student_manager import StudentManager

__all__ = [
    'create_app',
    'AttendanceManager',
    'AuthManager',
    'DatabaseManager',
    'GeoVerifier',
    'QRGenerator',
    'SessionGenerator',
    'SessionStore',
    'SessionStatsReporter',
    'StudentManager'
]


def create_app(config_name=None, config_overrides=None, clock=time.time,
               timer_factory=threading.Timer):
    """
    Build the Flask application and wire the attendance components together.

    Args:
        config_name (str): Key into config.config ('development', 'testing', ...)
        config_overrides (dict): Values applied on top of the config class
        clock (Callable): Time source shared by the session components
        timer_factory (Callable): Builds the session expiry timers
    """
    from config import init_config

    app = Flask(__name__)
    init_config(app, config_name, config_overrides)

    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
    )

    CORS(
        app,
        resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}},
        supports_credentials=True,
        methods=["GET", "POST"],
        allow_headers=["Content-Type", "Authorization"]
    )

    # Initialize system components
    db_manager = DatabaseManager(app.config['DATABASE_PATH'],
                                 seed_default_data=app.config['SEED_DEFAULT_DATA'])
    session_store = SessionStore(clock=clock)
    qr_generator = QRGenerator({
        'box_size': app.config['QR_CODE_SIZE'],
        'border': app.config['QR_CODE_BORDER'],
        'width': app.config['QR_CODE_IMAGE_WIDTH'],
        'fill_color': app.config['QR_CODE_FILL_COLOR'],
        'back_color': app.config['QR_CODE_BACK_COLOR']
    })
    geo_verifier = GeoVerifier(max_distance=app.config['GEO_MAX_DISTANCE_METERS'],
                               earth_radius=app.config['GEO_EARTH_RADIUS_METERS'])
    student_manager = StudentManager(db_manager)
    session_generator = SessionGenerator(
        session_store, qr_generator,
        default_duration=app.config['QR_SESSION_DEFAULT_DURATION'],
        timer_factory=timer_factory
    )
    atexit.register(session_generator.shutdown)

    app.extensions['qr_attendance'] = {
        'db_manager': db_manager,
        'session_store': session_store,
        'qr_generator': qr_generator,
        'student_manager': student_manager,
        'auth_manager': AuthManager(db_manager),
        'session_generator': session_generator,
        'attendance_manager': AttendanceManager(
            db_manager, session_store, student_manager, qr_generator, geo_verifier
        ),
        'stats_reporter': SessionStatsReporter(session_store, student_manager)
    }

    from .routes import main
    app.register_blueprint(main)

    return app
