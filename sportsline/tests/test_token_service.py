from datetime import datetime, timezone

import jwt
import pytest

from sportsline.config import JWT_AUDIENCE, JWT_ISSUER
from sportsline.errors import AuthenticationError
from sportsline.services import TokenService

from .conftest import TEST_JWT_SECRET

USER = {'id': 1, 'email': 'vendedor@sportsline.com', 'role': 'vendedor'}


@pytest.fixture
def token_service():
    return TokenService(TEST_JWT_SECRET)


def test_access_token_claims(token_service):
    claims = token_service.verify_token(token_service.generate_access_token(USER))

    assert claims['id'] == 1
    assert claims['email'] == USER['email']
    assert claims['role'] == 'vendedor'
    assert claims['type'] == 'access'
    assert claims['iss'] == JWT_ISSUER
    assert claims['aud'] == JWT_AUDIENCE
    assert claims['exp'] - claims['iat'] == 3600


def test_token_pair(token_service):
    pair = token_service.generate_token_pair(USER)

    refresh = token_service.verify_token(pair['refresh_token'])
    assert refresh['type'] == 'refresh'
    assert refresh['exp'] - refresh['iat'] == 7 * 24 * 3600
    assert token_service.verify_token(pair['access_token'])['type'] == 'access'


def test_expired_token():
    service = TokenService(TEST_JWT_SECRET, expires_in=-60)
    token = service.generate_access_token(USER)

    with pytest.raises(AuthenticationError) as exc_info:
        service.verify_token(token)
    assert exc_info.value.message == 'Token expirado'
    assert service.is_token_expired(token) is True


def test_token_signed_with_other_secret(token_service):
    other = TokenService('another-secret-key-that-is-long-enough-123456')
    with pytest.raises(AuthenticationError) as exc_info:
        token_service.verify_token(other.generate_access_token(USER))
    assert exc_info.value.message == 'Token inválido'


def test_token_for_other_audience(token_service):
    foreign = jwt.encode(
        {**USER, 'type': 'access', 'iss': JWT_ISSUER, 'aud': 'otra-app'},
        TEST_JWT_SECRET,
        algorithm='HS256',
    )
    with pytest.raises(AuthenticationError):
        token_service.verify_token(foreign)


def test_garbage_token(token_service):
    with pytest.raises(AuthenticationError):
        token_service.verify_token('no.es.jwt')
    assert token_service.decode_token('no.es.jwt') is None
    assert token_service.is_token_expired('no.es.jwt') is True
    assert token_service.get_token_expiration('no.es.jwt') is None


def test_decode_and_expiration(token_service):
    token = token_service.generate_access_token(USER)

    decoded = token_service.decode_token(token)
    assert decoded['email'] == USER['email']
    assert token_service.is_token_expired(token) is False

    expiration = token_service.get_token_expiration(token)
    assert expiration.tzinfo == timezone.utc
    assert expiration > datetime.now(timezone.utc)
