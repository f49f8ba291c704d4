"""
Smart Assessment - Test Configuration and Fixtures
"""
import os
import tempfile

import pytest

# Set testing environment before the app reads its settings
_DB_PATH = os.path.join(tempfile.gettempdir(), f"smart_assessment_test_{os.getpid()}.db")
os.environ['DATABASE_URL'] = f"sqlite:///{_DB_PATH}"
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['EVALUATION_BATCH_DELAY'] = '0'
os.environ.pop('SEED_USERNAME', None)
os.environ.pop('SEED_PASSWORD', None)

from fastapi.testclient import TestClient

from smart_assessment.breadcrumbs import breadcrumb_labels
from smart_assessment.db import Base, SessionLocal, engine
from smart_assessment.main import app
from smart_assessment.models import AuthUser, ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER
from smart_assessment.routers.auth import hash_password, issue_token


@pytest.fixture(scope='function')
def db_session():
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    """Test client sharing the test database"""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def clear_breadcrumbs():
    breadcrumb_labels.clear()
    yield
    breadcrumb_labels.clear()


@pytest.fixture
def make_user(db_session):
    """Create a user with the given role"""
    def _make(username: str, role: str = ROLE_STUDENT, password: str = 'testpassword123') -> str:
        db_session.add(AuthUser(username=username, password_hash=hash_password(password), role=role))
        db_session.commit()
        return username
    return _make


@pytest.fixture
def auth_headers(db_session, make_user):
    """Bearer headers for a freshly created user of the given role"""
    def _headers(role: str) -> dict:
        username = make_user(f"{role}-user", role)
        return {"Authorization": f"Bearer {issue_token(db_session, username)}"}
    return _headers


@pytest.fixture
def admin_headers(auth_headers):
    return auth_headers(ROLE_ADMIN)


@pytest.fixture
def teacher_headers(auth_headers):
    return auth_headers(ROLE_TEACHER)


@pytest.fixture
def student_headers(auth_headers):
    return auth_headers(ROLE_STUDENT)
