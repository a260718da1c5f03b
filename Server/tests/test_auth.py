from conftest import FakeDatabase

from heart_robot.services.auth_service import AuthService


def make_service():
    return AuthService(FakeDatabase(), 'unit-test-secret')


def test_register_login_verify_logout():
    service = make_service()
    events = []
    service.subscribe(lambda event, user: events.append((event, user['email'])))

    registered = service.register_user('Ada', ' Ada@Example.com ', 'secret123')
    assert registered['success'] is True
    assert registered['user']['email'] == 'ada@example.com'

    login = service.login_user('ada@example.com', 'secret123')
    assert login['success'] is True
    assert service.verify_token(login['token'])['user']['name'] == 'Ada'

    assert service.logout_user(login['token'])['success'] is True
    assert service.verify_token(login['token'])['success'] is False
    assert events == [('login', 'ada@example.com'), ('logout', 'ada@example.com')]


def test_registration_rules():
    service = make_service()
    assert service.register_user('Ada', 'not-an-email', 'secret123')['success'] is False
    assert service.register_user('Ada', 'ada@example.com', '123')['success'] is False
    assert service.register_user('Ada', 'ada@example.com', 'secret123')['success'] is True
    assert service.register_user('Ada', 'ada@example.com', 'secret123')['success'] is False


def test_name_defaults_to_email_prefix():
    service = make_service()
    result = service.register_user('', 'robo@example.com', 'secret123')
    assert result['user']['name'] == 'robo'


def test_wrong_password_and_bad_tokens():
    service = make_service()
    service.register_user('Ada', 'ada@example.com', 'secret123')

    assert service.login_user('ada@example.com', 'wrong-pass')['success'] is False
    assert service.verify_token('garbage')['success'] is False
    assert service.current_user('garbage') is None
    assert service.logout_user('')['success'] is False


def test_unsubscribe_stops_notifications():
    service = make_service()
    events = []
    unsubscribe = service.subscribe(lambda event, user: events.append(event))
    unsubscribe()

    service.register_user('Ada', 'ada@example.com', 'secret123')
    service.login_user('ada@example.com', 'secret123')
    assert events == []
