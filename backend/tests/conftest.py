import os
import tempfile

# The app module builds its engine at import time; point it at a throwaway file.
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+pysqlite:///{os.path.join(tempfile.mkdtemp(prefix='timetabler-tests-'), 'app.db')}",
)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import timetabler.models  # noqa: E402,F401
from timetabler.api.deps import get_db  # noqa: E402
from timetabler.core.security import UserRole, create_access_token  # noqa: E402
from timetabler.db.base import Base  # noqa: E402
from timetabler.main import app  # noqa: E402


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    def build(
        role: UserRole = UserRole.school_admin,
        *,
        school_id: str | None = "school-1",
        teacher_id: str | None = None,
        user_id: str = "user-1",
    ) -> dict[str, str]:
        token = create_access_token(user_id, role=role, school_id=school_id, teacher_id=teacher_id)
        return {"Authorization": f"Bearer {token}"}

    return build
