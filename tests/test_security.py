"""
Unit tests for password hashing and session tokens
"""
from datetime import datetime, timedelta, timezone

from jose import jwt

from app.core.config import settings
from app.core.security import (
    create_access_token,
    decode_access_token,
    get_password_hash,
    get_user_id_from_authorization,
    verify_password,
)


class TestPasswordHashing:

    def test_hash_differs_from_password(self):
        hashed = get_password_hash('testpassword123')
        assert hashed != 'testpassword123'

    def test_hash_is_salted(self):
        assert get_password_hash('testpassword123') != get_password_hash('testpassword123')

    def test_verify(self):
        hashed = get_password_hash('testpassword123')
        assert verify_password('testpassword123', hashed) is True
        assert verify_password('wrongpassword', hashed) is False


class TestAccessToken:

    def test_round_trip(self):
        token = create_access_token(42)
        assert decode_access_token(token) == 42

    def test_claims(self):
        token = create_access_token(7)
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])

        assert payload['sub'] == '7'
        assert set(payload) == {'sub', 'iat', 'exp'}
        lifetime = payload['exp'] - payload['iat']
        assert lifetime == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    def test_default_lifetime_is_seven_days(self):
        assert settings.ACCESS_TOKEN_EXPIRE_MINUTES == 7 * 24 * 60

    def test_expired_token(self):
        token = create_access_token(1, expires_delta=timedelta(seconds=-10))
        assert decode_access_token(token) is None

    def test_bad_signature(self):
        token = jwt.encode(
            {'sub': '1', 'exp': datetime.now(timezone.utc) + timedelta(hours=1)},
            'some-other-secret',
            algorithm=settings.ALGORITHM
        )
        assert decode_access_token(token) is None

    def test_malformed(self):
        assert decode_access_token('not-a-jwt') is None

    def test_non_numeric_subject(self):
        token = jwt.encode(
            {'sub': 'alice', 'exp': datetime.now(timezone.utc) + timedelta(hours=1)},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM
        )
        assert decode_access_token(token) is None


class TestAuthorizationHeader:

    def test_bearer(self):
        token = create_access_token(5)
        assert get_user_id_from_authorization(f'Bearer {token}') == 5

    def test_missing(self):
        assert get_user_id_from_authorization(None) is None
        assert get_user_id_from_authorization('') is None

    def test_wrong_scheme(self):
        token = create_access_token(5)
        assert get_user_id_from_authorization(f'Basic {token}') is None
        assert get_user_id_from_authorization(token) is None

    def test_empty_bearer(self):
        assert get_user_id_from_authorization('Bearer ') is None
