import sys
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Dict, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.config import Base  # noqa: E402
import backend.config as app_config  # noqa: E402
import backend.main as app_main  # noqa: E402
from backend.api.dependencies import get_db  # noqa: E402
from backend.auth.jwt import create_access_token, get_password_hash  # noqa: E402
# Import the full models module so all tables (including audit_logs) register with Base metadata.
from backend.models import models as _all_models  # noqa: E402,F401
from backend.models.models import Parcel, User, Visitor  # noqa: E402

PASSWORD = "changeme"


def _sqlite_engine(db_path: Path):
    # TestClient runs sync endpoints in a worker thread.
    return create_engine(f"sqlite:///{db_path}", connect_args={"check_same_thread": False})


@pytest.fixture(scope="session", autouse=True)
def _configure_global_test_db(tmp_path_factory):
    """Configure the app-wide SessionLocal/engine so TestClient never touches the dev database."""
    db_dir = tmp_path_factory.mktemp("globaldb")
    engine = _sqlite_engine(db_dir / "app.db")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    app_config.SessionLocal = SessionLocal
    app_config.engine = engine
    app_main.engine = engine
    yield
    engine.dispose()


@pytest.fixture(scope="session")
def password_hash() -> str:
    # bcrypt is slow; every fixture user shares one hash of PASSWORD.
    return get_password_hash(PASSWORD)


@pytest.fixture
def db_session(tmp_path) -> Generator[Session, None, None]:
    """Provide a fresh SQLite database for each test."""
    engine = _sqlite_engine(tmp_path / "test.db")
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def create_user(db_session: Session, password_hash: str) -> Callable[..., User]:
    counter = {"value": 0}

    def _create(
        email: Optional[str] = None,
        role: str = "resident",
        full_name: Optional[str] = None,
        is_active: bool = True,
    ) -> User:
        counter["value"] += 1
        user = User(
            email=email or f"{role}{counter['value']}@example.com",
            full_name=full_name or f"{role.title()} {counter['value']}",
            hashed_password=password_hash,
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _create


@pytest.fixture
def auth_headers() -> Callable[[User], Dict[str, str]]:
    def _headers(user: User) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _headers


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def _override_get_db():
        yield db_session

    app_main.app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app_main.app) as test_client:
            yield test_client
    finally:
        app_main.app.dependency_overrides.clear()


@pytest.fixture
def create_visitor(db_session: Session) -> Callable[..., Visitor]:
    def _create(resident: User, status: str = "new", visitor_name: str = "Jane Guest", **fields) -> Visitor:
        visitor = Visitor(resident_id=resident.id, visitor_name=visitor_name, status=status, **fields)
        db_session.add(visitor)
        db_session.commit()
        return visitor

    return _create


@pytest.fixture
def create_parcel(db_session: Session) -> Callable[..., Parcel]:
    counter = {"value": 0}

    def _create(resident: User, status: str = "received", **fields) -> Parcel:
        counter["value"] += 1
        fields.setdefault("parcel_number", f"PKG-{counter['value']:04d}")
        fields.setdefault("sender_name", "Courier")
        parcel = Parcel(resident_id=resident.id, status=status, **fields)
        db_session.add(parcel)
        db_session.commit()
        return parcel

    return _create
