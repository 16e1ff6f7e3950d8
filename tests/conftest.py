import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from regadmin.main import app
from regadmin.core.config import settings
from regadmin.db.base import Base
from regadmin.db.session import enable_sqlite_savepoints, get_db

# One in-memory database shared by every connection of a test
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_savepoints(engine)

TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session():
    """
    Fresh schema per test. The import pipeline commits row by row and
    rolls back dry runs itself, so tests use a plain session rather than
    an outer transaction.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def override_get_db(db_session):
    def _get_db_override():
        yield db_session

    app.dependency_overrides[get_db] = _get_db_override
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def storage_dirs(tmp_path, monkeypatch):
    """Point import, export and upload directories at a temp folder."""
    monkeypatch.setattr(settings, "IMPORT_DIR", tmp_path / "imports")
    monkeypatch.setattr(settings, "EXPORT_DIR", tmp_path / "exports")
    monkeypatch.setattr(settings, "STORAGE_DIR", tmp_path / "user-files")
    (tmp_path / "imports").mkdir()
    return tmp_path
