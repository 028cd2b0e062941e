import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ["ENVIRONMENT"] = "development"

from collections.abc import Callable, Generator  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from passlib.context import CryptContext  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core import auth  # noqa: E402
from app.core.auth import create_access_token  # noqa: E402
from app.core.database import Base, get_db  # noqa: E402
from app.core.rbac import ROLE_PERMISSIONS, ROLES  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Role, User  # noqa: E402

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False)

PASSWORD = "Senha@2024"


@pytest.fixture(autouse=True)
def _fast_hashing(monkeypatch: pytest.MonkeyPatch) -> None:
    # Minimum bcrypt cost keeps the suite fast
    monkeypatch.setattr(
        auth, "pwd_context", CryptContext(schemes=["bcrypt"], bcrypt__rounds=4)
    )


@pytest.fixture
def db() -> Generator[Session, None, None]:
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    def _get_test_db() -> Generator[Session, None, None]:
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def roles(db: Session) -> dict[str, Role]:
    created = {}
    for info in ROLES:
        role = Role(
            name=info["name"],
            display_name=info["display_name"],
            description=info["description"],
            is_system=True,
            permissions=list(ROLE_PERMISSIONS[info["name"]]),
        )
        db.add(role)
        created[info["name"]] = role
    db.commit()
    return created


@pytest.fixture
def make_user(db: Session, roles: dict[str, Role]) -> Callable[..., User]:
    def _make(
        role: str,
        email: str,
        name: str = "Usuario",
        is_active: bool = True,
        password: str = PASSWORD,
    ) -> User:
        user = User(
            name=name,
            email=email,
            cargo="Analista",
            role_id=roles[role].id,
            password_hash=auth.hash_password(password),
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


def auth_headers(user: User, permissions: list[str] | None = None) -> dict[str, str]:
    role = user.role
    token = create_access_token(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=role.name,
        permissions=list(role.permissions) if permissions is None else permissions,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(make_user: Callable[..., User]) -> User:
    return make_user("ADM", "adm@alumni.com", name="Administrador")


@pytest.fixture
def investor(make_user: Callable[..., User]) -> User:
    return make_user("Investidor", "investidor@alumni.com", name="Investidor")


@pytest.fixture
def customer_care(make_user: Callable[..., User]) -> User:
    return make_user("Customer Care", "customercare@alumni.com", name="Atendimento")


@pytest.fixture
def marketing(make_user: Callable[..., User]) -> User:
    return make_user("Marketing", "marketing@alumni.com", name="Marketing")
