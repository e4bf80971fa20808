import os
import tempfile

# Keep the app away from the real database and log directory
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("GYMDESK_LOG_DIR", os.path.join(tempfile.gettempdir(), "gymdesk-test-logs"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gymdesk.core.database import Base, build_engine, get_db
from gymdesk.core.security import create_access_token
from gymdesk.main import app

from factories import make_user


@pytest.fixture
def engine():
    test_engine = build_engine("sqlite://", poolclass=StaticPool, pool_pre_ping=False)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def staff_user(db):
    return make_user(db)


@pytest.fixture
def auth_headers(staff_user):
    token = create_access_token({"sub": staff_user.email, "uid": staff_user.id})
    return {"Authorization": f"Bearer {token}"}
