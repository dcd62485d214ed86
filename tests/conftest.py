import os

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from passlib.context import CryptContext  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from hrportal.auth import identity_store  # noqa: E402
from hrportal.core import config  # noqa: E402
from hrportal.database import Base, get_db  # noqa: E402
from hrportal.main import app  # noqa: E402
from hrportal.models.application import Application  # noqa: E402
from hrportal.models.job_posting import JobPosting  # noqa: E402
from hrportal.models.profile import Profile  # noqa: E402


@pytest.fixture(autouse=True)
def fast_password_hashing(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(identity_store, 'pwd_context', CryptContext(schemes=['bcrypt'], bcrypt__rounds=4))


@pytest.fixture(autouse=True)
def heuristic_provisioning(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'HEURISTIC_ROLE_PROVISIONING', True)


@pytest.fixture(autouse=True)
def storage_root(tmp_path, monkeypatch: pytest.MonkeyPatch):
    root = tmp_path / 'storage'
    monkeypatch.setattr(config, 'STORAGE_ROOT', str(root))
    return root


@pytest.fixture
def engine():
    test_engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )

    @event.listens_for(test_engine, 'connect')
    def _enable_foreign_keys(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()

    Base.metadata.create_all(bind=test_engine)
    try:
        yield test_engine
    finally:
        Base.metadata.drop_all(bind=test_engine)
        test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(email: str, role: str | None = 'applicant', password: str = 'secret123', **profile_fields):
        identity = identity_store.sign_up(db, email, password)
        if role is not None:
            db.add(Profile(id=identity.id, email=identity.email, role=role, **profile_fields))
            db.commit()
        return identity

    return _make_user


@pytest.fixture
def auth_headers():
    def _auth_headers(identity) -> dict:
        return {'Authorization': f'Bearer {identity_store.issue_session(identity)}'}

    return _auth_headers


@pytest.fixture
def make_job(db):
    def _make_job(job_title: str = 'Librarian', status: str = 'active', created_by: str | None = None, **fields):
        job = JobPosting(job_title=job_title, status=status, created_by=created_by, **fields)
        db.add(job)
        db.commit()
        db.refresh(job)
        return job

    return _make_job


@pytest.fixture
def make_application(db):
    def _make_application(job, applicant, pdf_path: str = '', status: str = 'For review', **fields):
        application = Application(
            job_id=job.id,
            applicant_id=applicant.id,
            pdf_path=pdf_path,
            status=status,
            **fields,
        )
        db.add(application)
        db.commit()
        db.refresh(application)
        return application

    return _make_application
