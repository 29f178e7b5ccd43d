import json

from qr_attendance import create_app

from conftest import CLASSROOM, PROFESSOR, STUDENT, north_of

GENERATE = '/api/qr-attendance/generate'
MARK = '/api/qr-attendance/mark'


def generate(client, **changes):
    body = {
        'subjectCode': 'CS101',
        'className': 'BSIT-3A',
        'classLocation': json.dumps(CLASSROOM),
        'duration': 60
    }
    body.update(changes)
    return client.post(GENERATE, json=body)


def mark(client, qr_data, location=None):
    return client.post(MARK, json={
        'qrData': qr_data,
        'studentLocation': json.dumps(location or north_of(CLASSROOM, 25))
    })


def test_health(app):
    response = app.test_client().get('/api/health')

    assert response.status_code == 200
    assert response.get_json() == {'status': 'ok', 'active_sessions': 0, 'total_present': 0}


def test_login_rejects_bad_credentials(app):
    client = app.test_client()

    assert client.post('/api/auth/login', json={'email': PROFESSOR, 'password': 'wrong'}).status_code == 401
    assert client.post('/api/auth/login', json={}).status_code == 400


def test_login_reports_role(app):
    response = app.test_client().post('/api/auth/login', json={'email': STUDENT, 'password': 'student123'})

    assert response.get_json()['user']['user_type'] == 'student'


def test_generate_requires_professor(app, student_client):
    assert generate(app.test_client()).status_code == 401
    assert generate(student_client).status_code == 403


def test_mark_requires_student(professor_client):
    assert mark(professor_client, '{}').status_code == 403


def test_full_attendance_flow(professor_client, student_client):
    generated = generate(professor_client)
    assert generated.status_code == 200
    session = generated.get_json()
    assert session['qrCode'].startswith('data:image/png;base64,')
    assert session['duration'] == 60

    marked = mark(student_client, session['qrData'])
    assert marked.status_code == 200
    assert marked.get_json()['student'] == 'Juan Dela Cruz'
    assert marked.get_json()['subject'] == 'CS101'

    again = mark(student_client, session['qrData'])
    assert again.status_code == 409
    assert again.get_json()['error_type'] == 'already_marked'

    stats = professor_client.get(f"/api/qr-attendance/session/{session['sessionId']}")
    assert stats.status_code == 200
    body = stats.get_json()
    assert body['sessionInfo']['totalPresent'] == 1
    assert body['presentStudents'] == [{'name': 'Juan Dela Cruz', 'email': STUDENT, 'rollNo': '2024001'}]


def test_generate_validation_error(professor_client):
    response = generate(professor_client, classLocation=None)

    assert response.status_code == 400
    assert response.get_json() == {
        'success': False,
        'error': 'Subject code, class name, and location are required',
        'error_type': 'invalid_request'
    }


def test_mark_out_of_range(professor_client, student_client):
    session = generate(professor_client).get_json()

    response = mark(student_client, session['qrData'], location=north_of(CLASSROOM, 500))

    assert response.status_code == 400
    assert response.get_json()['error'] == 'You must be in the classroom to mark attendance'


def test_mark_after_expiry(professor_client, student_client, clock):
    session = generate(professor_client).get_json()
    clock.advance(61)

    response = mark(student_client, session['qrData'])

    assert response.status_code == 400
    assert response.get_json()['error_type'] == 'session_expired'


def test_mark_with_garbage_payload(student_client):
    response = mark(student_client, 'garbage')

    assert response.status_code == 400
    assert response.get_json()['error_type'] == 'malformed_payload'


def test_stats_for_unknown_session(professor_client):
    response = professor_client.get('/api/qr-attendance/session/does-not-exist')

    assert response.status_code == 404


def test_close_session(professor_client, student_client, timers):
    session = generate(professor_client).get_json()

    closed = professor_client.post(f"/api/qr-attendance/session/{session['sessionId']}/close")
    assert closed.status_code == 200
    assert timers.last.cancelled is True

    assert professor_client.get(f"/api/qr-attendance/session/{session['sessionId']}").status_code == 404
    assert mark(student_client, session['qrData']).get_json()['error_type'] == 'session_expired'


def test_stats_and_close_are_owner_only(app, professor_client):
    session = generate(professor_client).get_json()

    app.extensions['qr_attendance']['auth_manager'].create_professor(
        'ana.cruz@school.edu', 'Prof. Ana Cruz', 'prof456'
    )
    other = app.test_client()
    other.post('/api/auth/login', json={'email': 'ana.cruz@school.edu', 'password': 'prof456'})

    assert other.get(f"/api/qr-attendance/session/{session['sessionId']}").status_code == 403
    assert other.post(f"/api/qr-attendance/session/{session['sessionId']}/close").status_code == 403


def test_logout_clears_identity(student_client):
    assert student_client.post('/api/auth/logout').status_code == 200
    assert mark(student_client, '{}').status_code == 401


def test_app_cancels_expiry_timers_at_exit(tmp_path, clock, timers, monkeypatch):
    import qr_attendance

    registered = []
    monkeypatch.setattr(qr_attendance.atexit, 'register', registered.append)
    app = create_app('testing', {'DATABASE_PATH': str(tmp_path / 'exit.db')},
                     clock=clock, timer_factory=timers)
    generator = app.extensions['qr_attendance']['session_generator']
    generator.generate_session('CS101', 'BSIT-3A', CLASSROOM, PROFESSOR, render_image=False)

    assert registered == [generator.shutdown]
    registered[0]()

    assert generator.pending_timers() == 0
    assert timers.last.cancelled is True
    app.extensions['qr_attendance']['db_manager'].close_all_connections()
