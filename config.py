# QR Attendance Session Service Configuration

import os
from datetime import timedelta
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).parent.absolute()


class Config:
    """Base configuration class"""

    # Flask Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'qr-attendance-secret-key-2025'

    # Database Configuration
    DATABASE_PATH = BASE_DIR / 'database' / 'attendance.db'
    SEED_DEFAULT_DATA = False

    # Attendance Session Configuration
    QR_SESSION_DEFAULT_DURATION = int(os.environ.get('QR_SESSION_DEFAULT_DURATION') or 60)  # seconds
    GEO_MAX_DISTANCE_METERS = float(os.environ.get('GEO_MAX_DISTANCE_METERS') or 100)
    GEO_EARTH_RADIUS_METERS = 6371000.0

    # QR Code Configuration
    QR_CODE_SIZE = 10
    QR_CODE_BORDER = 2
    QR_CODE_IMAGE_WIDTH = 400
    QR_CODE_FILL_COLOR = '#000000'
    QR_CODE_BACK_COLOR = '#FFFFFF'

    # Session Configuration
    PERMANENT_SESSION_LIFETIME = timedelta(hours=24)
    SESSION_COOKIE_SECURE = False  # Set to True in production with HTTPS
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # CORS settings
    CORS_ORIGINS = [origin for origin in (os.environ.get('FRONTEND_URL') or 'http://localhost:5173').split(',') if origin]

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'
    LOG_FILE = BASE_DIR / 'logs' / 'attendance.log'
    LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
    LOG_BACKUP_COUNT = 5

    # Development Configuration
    DEBUG = os.environ.get('DEBUG', 'False').lower() in ['true', 'on', '1']
    TESTING = False

    @classmethod
    def init_app(cls, app):
        """Initialize application configuration"""
        database_path = str(app.config.get('DATABASE_PATH', cls.DATABASE_PATH))
        if database_path != ':memory:':
            Path(database_path).parent.mkdir(parents=True, exist_ok=True)


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True

    DATABASE_PATH = BASE_DIR / 'database' / 'attendance_dev.db'
    SEED_DEFAULT_DATA = True

    # More verbose logging
    LOG_LEVEL = 'DEBUG'


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = True

    # Tests point this at a temporary file; thread-local connections cannot share ':memory:'
    DATABASE_PATH = BASE_DIR / 'database' / 'attendance_test.db'
    SECRET_KEY = 'testing-secret-key'
    LOG_LEVEL = 'DEBUG'


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False

    # Enhanced security for production
    SESSION_COOKIE_SECURE = True  # Requires HTTPS
    SESSION_COOKIE_SAMESITE = 'None'

    DATABASE_PATH = BASE_DIR / 'database' / 'attendance_prod.db'

    # Production logging
    LOG_LEVEL = 'WARNING'

    @classmethod
    def init_app(cls, app):
        Config.init_app(app)

        import logging
        from logging.handlers import RotatingFileHandler

        # Setup file logging
        if not app.debug:
            cls.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                cls.LOG_FILE,
                maxBytes=cls.LOG_MAX_BYTES,
                backupCount=cls.LOG_BACKUP_COUNT
            )
            file_handler.setFormatter(logging.Formatter(
                '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
            ))
            file_handler.setLevel(logging.INFO)
            app.logger.addHandler(file_handler)

            app.logger.setLevel(logging.INFO)
            app.logger.info('QR Attendance Session Service startup')


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get configuration based on environment variable"""
    return config.get(os.environ.get('FLASK_ENV', 'default'), DevelopmentConfig)


def validate_config(app_config):
    """Validate configuration settings"""
    errors = []

    if not app_config.get('SECRET_KEY'):
        errors.append("SECRET_KEY must be set")

    if app_config.get('QR_SESSION_DEFAULT_DURATION', 0) <= 0:
        errors.append("QR_SESSION_DEFAULT_DURATION must be a positive number of seconds")

    if app_config.get('GEO_MAX_DISTANCE_METERS', 0) <= 0:
        errors.append("GEO_MAX_DISTANCE_METERS must be positive")

    if not app_config.get('DATABASE_PATH'):
        errors.append("DATABASE_PATH must be set")

    return errors


def init_config(app, config_name=None, overrides=None):
    """Initialize application with configuration"""
    if config_name is None:
        config_class = get_config()
    else:
        config_class = config.get(config_name, DevelopmentConfig)
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    config_class.init_app(app)

    errors = validate_config(app.config)
    if errors:
        for error in errors:
            app.logger.error(f"Configuration error: {error}")
        raise RuntimeError("Configuration validation failed")

    return config_class
