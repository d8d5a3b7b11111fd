import pytest
from werkzeug.security import check_password_hash

from sportsline.errors import AuthenticationError, ValidationError
from sportsline.models import UserRole
from sportsline.services import AuthService, TokenService

from .conftest import TEST_JWT_SECRET


@pytest.fixture
def token_service():
    return TokenService(TEST_JWT_SECRET)


@pytest.fixture
def auth_service(user_repo, token_service, audit_service):
    return AuthService(user_repo, token_service, audit_service)


def test_register_hashes_password(auth_service, user_repo):
    user = auth_service.register('Admin Dos', 'Admin@Sportsline.com', 'clave-segura', 'admin')

    assert user.id == 2
    assert user.email == 'admin@sportsline.com'
    assert user.role == UserRole.ADMIN
    stored = user_repo.get(user.id)
    assert stored.password_hash != 'clave-segura'
    assert check_password_hash(stored.password_hash, 'clave-segura')


def test_register_defaults_to_vendedor(auth_service):
    assert auth_service.register('Ven', 'ven@sportsline.com', '123456').role == UserRole.VENDEDOR


def test_register_collects_all_errors(auth_service):
    with pytest.raises(ValidationError) as exc_info:
        auth_service.register('', 'no-es-email', '123', 'gerente')
    assert len(exc_info.value.errors) == 4


def test_register_duplicate_email(auth_service):
    with pytest.raises(ValidationError):
        auth_service.register('Otro', 'VENDEDOR@sportsline.com', 'secreto123')


def test_login(auth_service, token_service, audit_service):
    result = auth_service.login('vendedor@sportsline.com', 'secreto123')

    assert result['user']['email'] == 'vendedor@sportsline.com'
    assert 'password' not in result['user']
    assert token_service.verify_token(result['access_token'])['id'] == 1
    assert token_service.verify_token(result['refresh_token'])['type'] == 'refresh'
    assert audit_service.get_logs_by_type('USUARIO')[0]['related_id'] == 'usuario-1'


def test_login_rejects_bad_credentials(auth_service):
    assert auth_service.login('vendedor@sportsline.com', 'incorrecta') is None
    assert auth_service.login('nadie@sportsline.com', 'secreto123') is None


def test_inactive_user_cannot_login_or_refresh(auth_service):
    tokens = auth_service.login('vendedor@sportsline.com', 'secreto123')
    auth_service.update_user(1, {'active': False})

    assert auth_service.login('vendedor@sportsline.com', 'secreto123') is None
    assert auth_service.refresh_access_token(tokens['refresh_token']) is None


def test_refresh_access_token(auth_service, token_service):
    tokens = auth_service.login('vendedor@sportsline.com', 'secreto123')

    refreshed = auth_service.refresh_access_token(tokens['refresh_token'])
    assert token_service.verify_token(refreshed['access_token'])['type'] == 'access'

    with pytest.raises(AuthenticationError):
        auth_service.refresh_access_token(tokens['access_token'])
    with pytest.raises(AuthenticationError):
        auth_service.refresh_access_token('basura')


def test_update_user(auth_service):
    user = auth_service.update_user(1, {'name': 'Nuevo Nombre', 'role': 'admin'})
    assert user.name == 'Nuevo Nombre'
    assert user.is_admin()

    assert auth_service.update_user(99, {'name': 'X'}) is None
    with pytest.raises(ValidationError):
        auth_service.update_user(1, {'salary': 10})
    with pytest.raises(ValidationError):
        auth_service.update_user(1, {'email': 'no-es-email'})


def test_change_password(auth_service):
    assert auth_service.change_password(1, 'incorrecta', 'nueva-clave') is False
    assert auth_service.change_password(99, 'secreto123', 'nueva-clave') is False
    with pytest.raises(ValidationError):
        auth_service.change_password(1, 'secreto123', '123')

    assert auth_service.change_password(1, 'secreto123', 'nueva-clave') is True
    assert auth_service.login('vendedor@sportsline.com', 'nueva-clave') is not None
    assert auth_service.login('vendedor@sportsline.com', 'secreto123') is None
