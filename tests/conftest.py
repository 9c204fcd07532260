import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, session_scope
from deps import get_db
from main import app


def _memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


def _override_db(engine):
    testing_session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def override_get_db():
        with session_scope(testing_session) as db:
            yield db

    return override_get_db


@pytest.fixture()
def engine():
    eng = _memory_engine()
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def client(engine):
    app.dependency_overrides[get_db] = _override_db(engine)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def broken_client():
    # No tables: every query fails inside the storage layer.
    eng = _memory_engine()
    app.dependency_overrides[get_db] = _override_db(eng)
    yield TestClient(app)
    app.dependency_overrides.clear()
    eng.dispose()
