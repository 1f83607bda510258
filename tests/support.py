"""Shared helpers: SQLite session factory, app client, seeded users and auth cookies."""

from collections.abc import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from acquisitions.core.database import get_db
from acquisitions.core.security import create_access_token, hash_password
from acquisitions.main import create_app
from acquisitions.models import Base, User
from acquisitions.services.throttle import ThrottleConfig, ThrottleGate, ThrottlePolicy
from acquisitions.services.verdict import SlidingWindowVerdictProvider, VerdictProvider

DEFAULT_PASSWORD = "correct-horse-battery"


def make_session_factory() -> sessionmaker:
    """Fresh in-memory database with the users table created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def roomy_config() -> ThrottleConfig:
    """Limits high enough that functional tests never hit them."""
    return ThrottleConfig(
        [
            ThrottlePolicy("guest", 60, 1000, "Guest rate limit"),
            ThrottlePolicy("user", 60, 1000, "User rate limit"),
            ThrottlePolicy("admin", 60, 1000, "Admin rate limit"),
        ]
    )


def make_gate(
    config: ThrottleConfig | None = None,
    provider: VerdictProvider | None = None,
    timeout_seconds: float = 2.0,
) -> ThrottleGate:
    return ThrottleGate(
        config=config or roomy_config(),
        provider=provider or SlidingWindowVerdictProvider(),
        timeout_seconds=timeout_seconds,
    )


def make_client(
    session_factory: sessionmaker,
    gate: ThrottleGate | None = None,
) -> TestClient:
    app = create_app(throttle_gate=gate or make_gate())

    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def seed_user(
    session_factory: sessionmaker,
    email: str,
    role: str = "user",
    name: str = "Test User",
    password: str = DEFAULT_PASSWORD,
    user_id: int | None = None,
) -> int:
    db = session_factory()
    try:
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
        )
        if user_id is not None:
            user.id = user_id
        db.add(user)
        db.commit()
        return user.id
    finally:
        db.close()


def count_users(session_factory: sessionmaker) -> int:
    db = session_factory()
    try:
        return db.query(User).count()
    finally:
        db.close()


def auth_headers(user_id: int, email: str, role: str) -> dict[str, str]:
    """Cookie header carrying a freshly signed token for the given identity."""
    token = create_access_token(user_id=user_id, email=email, role=role)
    return {"Cookie": f"token={token}"}
