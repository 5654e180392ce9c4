import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock, Mock
from datetime import date, datetime, timedelta, timezone
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from app.config import settings
from app.database import get_db
from app.auth.dependencies import get_current_user
from app.models import (
    Base,
    Course,
    KiwifyProduct,
    Profile,
    SchoolClass,
    Student,
    StudentStatus,
    Tenant,
    TenantStatus,
    UserRole,
)


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch):
    """Registration retries sleep 0ms in tests"""
    monkeypatch.setattr(settings, "registration_backoff_ms", 0)
    monkeypatch.setattr(settings, "registration_backoff_jitter_ms", 0)


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of the test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite so separate connections really are separate writers"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'escola.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def serialized_engine(tmp_path):
    """
    File-backed SQLite where every transaction starts with BEGIN IMMEDIATE.

    pysqlite's deferred BEGIN makes concurrent writers fail with "database is
    locked" instead of waiting; IMMEDIATE makes them queue on the busy timeout.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'escola-concurrent.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


def make_session_factory(bind):
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


@pytest.fixture
def db_session(engine):
    db = make_session_factory(engine)()
    yield db
    db.close()


def seed_school(db, tenant_id="T1", school_year=2024):
    """One tenant with a course, a class, staff profiles and a Kiwify product mapping"""
    tenant = Tenant(id=tenant_id, name="Escola Modelo", status=TenantStatus.ACTIVE)
    course = Course(id=f"{tenant_id}-course", tenant_id=tenant_id, name="1º Ano")
    school_class = SchoolClass(
        id=f"{tenant_id}-class", tenant_id=tenant_id, course_id=course.id, name="1º Ano A", school_year=school_year,
    )
    admin = Profile(id=f"{tenant_id}-admin", email=f"admin@{tenant_id.lower()}.test", role=UserRole.ADMIN, tenant_id=tenant_id)
    secretary = Profile(
        id=f"{tenant_id}-secretary", email=f"secretaria@{tenant_id.lower()}.test", role=UserRole.SECRETARY, tenant_id=tenant_id,
    )
    student_user = Profile(
        id=f"{tenant_id}-student-user", email=f"aluno@{tenant_id.lower()}.test", role=UserRole.STUDENT, tenant_id=tenant_id,
    )
    db.add_all([tenant, course, school_class, admin, secretary, student_user])
    db.commit()
    return SimpleNamespace(
        tenant_id=tenant_id,
        course_id=course.id,
        class_id=school_class.id,
        admin_id=admin.id,
        secretary_id=secretary.id,
        student_user_id=student_user.id,
    )


@pytest.fixture
def school(db_session):
    return seed_school(db_session)


def add_student(db, tenant_id, registration_code, user_id=None, full_name="Aluno Existente"):
    student = Student(
        tenant_id=tenant_id,
        registration_code=registration_code,
        full_name=full_name,
        status=StudentStatus.ACTIVE,
        user_id=user_id,
    )
    db.add(student)
    db.commit()
    return student


def add_kiwify_product(db, kiwify_product_id, course_id):
    product = KiwifyProduct(kiwify_product_id=kiwify_product_id, course_id=course_id, name="Curso Online")
    db.add(product)
    db.commit()
    return product


def registration_payload(school, school_year=2024, **student_overrides):
    student = {
        "full_name": "Maria Souza",
        "birth_date": date(2015, 3, 10).isoformat(),
        "class_id": school.class_id,
        "course_id": school.course_id,
    }
    student.update(student_overrides)
    return {
        "tenant_id": school.tenant_id,
        "school_year": school_year,
        "student": student,
        "guardian": {
            "full_name": "Ana Souza",
            "relationship": "mãe",
            "phone": "+5511999999999",
        },
    }


@pytest.fixture
def client(db_session):
    """TestClient on the SQLite session, no auth override"""
    app.dependency_overrides[get_db] = lambda: db_session
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def login_as(db_session):
    """Override the authenticated profile: login_as(profile_id)"""
    def _login(profile_id):
        profile = db_session.query(Profile).filter(Profile.id == profile_id).one()
        app.dependency_overrides[get_current_user] = lambda: profile
        return profile
    yield _login
    app.dependency_overrides.pop(get_current_user, None)


@pytest.fixture
def mock_db():
    """Mock database session"""
    db = MagicMock()
    db.query.return_value = db
    db.filter.return_value = db
    db.order_by.return_value = db
    db.offset.return_value = db
    db.limit.return_value = db
    db.first.return_value = None
    db.all.return_value = []
    return db


def _mock_profile(role, tenant_id=None):
    profile = Mock(spec=Profile)
    profile.id = f"{role.value}-1"
    profile.email = f"{role.value}@escola.test"
    profile.role = role
    profile.tenant_id = tenant_id
    return profile


def _client_as(profile, db):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_current_user] = lambda: profile
    return TestClient(app)


@pytest.fixture
def client_with_super_admin(mock_db):
    """TestClient with mocked DB and super admin auth"""
    profile = _mock_profile(UserRole.SUPER_ADMIN)
    yield _client_as(profile, mock_db), mock_db, profile
    app.dependency_overrides.clear()


@pytest.fixture
def client_with_school_admin(mock_db):
    """TestClient with mocked DB and a tenant admin (not super admin)"""
    profile = _mock_profile(UserRole.ADMIN, tenant_id="T1")
    yield _client_as(profile, mock_db), mock_db, profile
    app.dependency_overrides.clear()


def make_access_token(sub, expires_delta=timedelta(minutes=15), token_type="access", key=None):
    """Token shaped like the ones the login service issues"""
    claims = {"sub": sub, "type": token_type, "exp": datetime.now(timezone.utc) + expires_delta}
    return jwt.encode(claims, key or settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
