import pytest

from qr_attendance import create_app
from qr_attendance.modules.attendance_manager import AttendanceManager
from qr_attendance.modules.database_manager import DatabaseManager
from qr_attendance.modules.geo_verifier import GeoVerifier
from qr_attendance.modules.qr_generator import QRGenerator
from qr_attendance.modules.session_generator import SessionGenerator
from qr_attendance.modules.session_store import SessionStore
from qr_attendance.modules.stats_reporter import SessionStatsReporter
from qr_attendance.modules.student_manager import StudentManager

# Meters per degree of latitude on a 6,371 km sphere
METERS_PER_DEGREE = 111194.92664455873

CLASSROOM = {'latitude': 12.9716, 'longitude': 77.5946}
PROFESSOR = 'john.smith@school.edu'
STUDENT = 'juan.delacruz@student.edu'
OTHER_STUDENT = 'maria.santos@student.edu'


def north_of(location, meters):
    """A point the given number of meters due north of location."""
    return {
        'latitude': location['latitude'] + meters / METERS_PER_DEGREE,
        'longitude': location['longitude']
    }


class FakeClock:
    def __init__(self, start=1700000000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingTimer:
    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)


class TimerRecorder:
    """Timer factory that keeps every timer it builds so tests can fire them."""

    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = RecordingTimer(interval, function, args, kwargs)
        self.timers.append(timer)
        return timer

    @property
    def last(self):
        return self.timers[-1]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers():
    return TimerRecorder()


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(tmp_path / 'attendance.db')
    yield manager
    manager.close_all_connections()


@pytest.fixture
def student_manager(db):
    manager = StudentManager(db)
    for email, name, roll in ((STUDENT, 'Juan Dela Cruz', '2024001'),
                              (OTHER_STUDENT, 'Maria Santos', '2024002')):
        result = manager.create_student({
            'email': email, 'full_name': name, 'roll_no': roll, 'password': 'student123'
        })
        assert result['success'], result
    return manager


@pytest.fixture
def store(clock):
    return SessionStore(clock=clock)


@pytest.fixture
def qr_generator():
    return QRGenerator()


@pytest.fixture
def session_generator(store, qr_generator, timers):
    return SessionGenerator(store, qr_generator, timer_factory=timers)


@pytest.fixture
def attendance_manager(db, store, student_manager, qr_generator):
    return AttendanceManager(db, store, student_manager, qr_generator, GeoVerifier())


@pytest.fixture
def stats_reporter(store, student_manager):
    return SessionStatsReporter(store, student_manager)


@pytest.fixture
def open_session(session_generator):
    """Open a 60 second session at the classroom and return the generation result."""
    def _open(duration=None, owner=PROFESSOR):
        result = session_generator.generate_session(
            'CS101', 'BSIT-3A', CLASSROOM, owner, duration, render_image=False
        )
        assert result['success'], result
        return result
    return _open


@pytest.fixture
def app(tmp_path, clock, timers):
    app = create_app('testing', {'DATABASE_PATH': str(tmp_path / 'app.db')},
                     clock=clock, timer_factory=timers)
    components = app.extensions['qr_attendance']
    components['auth_manager'].create_professor(PROFESSOR, 'Dr. John Smith', 'prof123')
    components['student_manager'].create_student({
        'email': STUDENT, 'full_name': 'Juan Dela Cruz', 'roll_no': '2024001', 'password': 'student123'
    })
    yield app
    components['db_manager'].close_all_connections()


def _login(app, email, password):
    client = app.test_client()
    response = client.post('/api/auth/login', json={'email': email, 'password': password})
    assert response.status_code == 200, response.get_json()
    return client


@pytest.fixture
def professor_client(app):
    return _login(app, PROFESSOR, 'prof123')


@pytest.fixture
def student_client(app):
    return _login(app, STUDENT, 'student123')
