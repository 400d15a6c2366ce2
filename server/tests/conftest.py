"""Pytest configuration and fixtures for GameVault tests."""

from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.db.session import enable_sqlite_foreign_keys
from app.main import app
from app.models.base import Base
from app.models.game import AvailabilityStatus, Game
from app.models.user import User
from app.services.auth import get_password_hash

# Use SQLite in-memory for tests (fast, isolated)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass  # Don't close the session here, let the db fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def file_session_factory(tmp_path: Path) -> Generator[sessionmaker, None, None]:
    """Session factory over a file-backed SQLite database, one connection per session.

    Used by concurrency tests where each thread needs its own connection.
    """
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'gamevault.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    enable_sqlite_foreign_keys(file_engine)
    Base.metadata.create_all(bind=file_engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    finally:
        file_engine.dispose()


def _make_user(db: Session, username: str, password: str, role: str = "user") -> User:
    user = User(username=username, password_hash=get_password_hash(password), role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _login(client: TestClient, username: str, password: str) -> dict[str, str]:
    response = client.post("/api/auth/login", data={"username": username, "password": password})
    assert response.status_code == 200, f"Login failed: {response.json()}"
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def test_user(db: Session) -> User:
    """Create a regular voter account."""
    return _make_user(db, "testuser", "testpassword123")


@pytest.fixture
def other_user(db: Session) -> User:
    """Create a second voter account."""
    return _make_user(db, "otheruser", "otherpassword123")


@pytest.fixture
def admin_user(db: Session) -> User:
    """Create an admin test user."""
    return _make_user(db, "adminuser", "adminpassword123", role="admin")


@pytest.fixture
def auth_headers(client: TestClient, test_user: User) -> dict[str, str]:
    """Get authentication headers for the test user."""
    return _login(client, "testuser", "testpassword123")


@pytest.fixture
def other_headers(client: TestClient, other_user: User) -> dict[str, str]:
    """Get authentication headers for the second user."""
    return _login(client, "otheruser", "otherpassword123")


@pytest.fixture
def admin_headers(client: TestClient, admin_user: User) -> dict[str, str]:
    """Get authentication headers for the admin user."""
    return _login(client, "adminuser", "adminpassword123")


@pytest.fixture
def make_game(db: Session) -> Callable[..., Game]:
    """Factory for catalog games with unique slugs."""
    counter = {"n": 0}

    def _make(title: str | None = None, **kwargs) -> Game:
        counter["n"] += 1
        title = title or f"Test Game {counter['n']}"
        game = Game(
            title=title,
            slug=kwargs.pop("slug", f"test-game-{counter['n']}"),
            availability_status=kwargs.pop(
                "availability_status", AvailabilityStatus.ABANDONWARE.value
            ),
            **kwargs,
        )
        db.add(game)
        db.commit()
        db.refresh(game)
        return game

    return _make


@pytest.fixture
def test_game(make_game: Callable[..., Game]) -> Game:
    """Create an abandonware game with no re-release request yet."""
    return make_game("Grim Fandango", slug="grim-fandango")
