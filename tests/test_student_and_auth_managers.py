import pytest

from qr_attendance.modules.auth_manager import AuthManager

from conftest import PROFESSOR, STUDENT


@pytest.fixture
def auth_manager(db, student_manager):
    manager = AuthManager(db)
    assert manager.create_professor(PROFESSOR, 'Dr. John Smith', 'prof123')['success']
    return manager


def test_get_student_by_email(student_manager):
    profile = student_manager.get_student_by_email(STUDENT)

    assert profile.full_name == 'Juan Dela Cruz'
    assert profile.to_dict() == {'name': 'Juan Dela Cruz', 'email': STUDENT, 'rollNo': '2024001'}
    assert student_manager.get_student_by_email('ghost@student.edu') is None
    assert student_manager.get_student_by_email('') is None


def test_get_students_by_emails_skips_unknown_and_duplicates(student_manager):
    profiles = student_manager.get_students_by_emails([STUDENT, STUDENT, 'ghost@student.edu'])

    assert [p.email for p in profiles] == [STUDENT]


@pytest.mark.parametrize('changes, error', [
    ({'email': ''}, 'Missing required field: email'),
    ({'email': 'not-an-email'}, 'Invalid email address format'),
    ({'full_name': 'A'}, 'Full name must be at least 2 characters'),
    ({'roll_no': 'R-17'}, 'Roll number must be 1-10 digits'),
])
def test_create_student_validation(student_manager, changes, error):
    data = {'email': 'new@student.edu', 'full_name': 'New Student', 'roll_no': '2024010', 'password': 'pw'}
    data.update(changes)

    result = student_manager.create_student(data)

    assert result == {'success': False, 'error': error}


def test_create_student_rejects_duplicate_email(student_manager):
    result = student_manager.create_student({
        'email': STUDENT, 'full_name': 'Someone Else', 'roll_no': '2024999', 'password': 'pw'
    })

    assert result == {'success': False, 'error': 'Email or roll number already exists'}


def test_authenticate_professor_and_student(auth_manager):
    professor = auth_manager.authenticate_user(PROFESSOR.upper(), 'prof123')
    student = auth_manager.authenticate_user(STUDENT, 'student123')

    assert professor == {'email': PROFESSOR, 'full_name': 'Dr. John Smith', 'user_type': 'professor'}
    assert student['user_type'] == 'student'


def test_authenticate_rejects_bad_credentials(auth_manager):
    assert auth_manager.authenticate_user(PROFESSOR, 'wrong') is None
    assert auth_manager.authenticate_user('ghost@school.edu', 'prof123') is None
    assert auth_manager.authenticate_user(PROFESSOR, '') is None


def test_create_professor_rejects_duplicates(auth_manager):
    assert auth_manager.create_professor(PROFESSOR, 'Dr. Smith Again', 'x') == {
        'success': False, 'error': 'Email already exists'
    }
