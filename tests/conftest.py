"""
Test configuration and fixtures
"""
import os

# must be set before the app and its settings are imported
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['OTP_SWEEP_INTERVAL_SECONDS'] = '0'
os.environ['OTP_INVALIDATE_PREVIOUS'] = 'true'
os.environ['ALLOWED_HOSTS'] = '["*"]'
os.environ.pop('SMTP_SERVER', None)

import pytest
from faker import Faker
from fastapi.testclient import TestClient

from app import crud, models
from app.core.security import create_access_token, get_password_hash
from app.database import Base, SessionLocal, engine
from app.main import app

fake = Faker()

STUDENT_PASSWORD = 'studentpass123'
ADMIN_PASSWORD = 'adminpassword123'


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def make_user(db, email, username=None, password=STUDENT_PASSWORD,
              role=models.ROLE_STUDENT, is_verified=True):
    user = crud.create_user(
        db,
        username=username or fake.unique.user_name(),
        full_name=fake.name(),
        email=email,
        password=get_password_hash(password),
        role=role,
        is_verified=is_verified
    )
    db.commit()
    db.refresh(user)
    return user


def latest_code(db, email):
    """Most recently issued code for ``email`` (what the email would contain)."""
    db.expire_all()
    codes = crud.get_otp_codes_for_email(db, email)
    return codes[-1] if codes else None


@pytest.fixture
def student(db):
    return make_user(db, 'student@vu.edu.pk')


@pytest.fixture
def admin_user(db):
    return make_user(db, 'admin@portal.org', username='admin', password=ADMIN_PASSWORD,
                     role=models.ROLE_ADMIN)


@pytest.fixture
def auth_headers(student):
    return {'Authorization': f'Bearer {create_access_token(student.id)}'}


@pytest.fixture
def admin_auth_headers(admin_user):
    return {'Authorization': f'Bearer {create_access_token(admin_user.id)}'}


@pytest.fixture
def user_factory(db):
    def factory(email, **kwargs):
        return make_user(db, email, **kwargs)
    return factory


@pytest.fixture
def otp_for(db):
    return lambda email: latest_code(db, email)
