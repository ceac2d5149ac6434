import base64

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from hkids.auth import hash_password
from hkids.database import get_session
from hkids.main import app
from hkids.models.user import User

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def png_data_uri(payload: bytes = PNG_BYTES) -> str:
    return "data:image/png;base64," + base64.b64encode(payload).decode()


@pytest.fixture(autouse=True)
def media_dir(tmp_path, monkeypatch):
    """Write uploaded images to a temp directory."""
    directory = tmp_path / "uploads"
    monkeypatch.setattr("hkids.config.settings.media_dir", str(directory))
    return directory


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        # Seed admin user
        admin = User(
            username="admin",
            email="admin@hkids.test",
            password_hash=hash_password("admin"),
            role="admin",
        )
        session.add(admin)
        session.commit()
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        yield session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_token(client: TestClient) -> str:
    response = client.post(
        "/auth/login",
        json={"email": "admin@hkids.test", "password": "admin"},
    )
    return response.json()["token"]


@pytest.fixture
def user_token(client: TestClient, session: Session) -> str:
    user = User(
        username="reader",
        email="reader@hkids.test",
        password_hash=hash_password("readerpass"),
        role="user",
    )
    session.add(user)
    session.commit()
    response = client.post(
        "/auth/login",
        json={"email": "reader@hkids.test", "password": "readerpass"},
    )
    return response.json()["token"]


@pytest.fixture
def admin_headers(admin_token: str) -> dict:
    return {"Authorization": f"Bearer {admin_token}"}
