import pytest
from httpx import AsyncClient, ASGITransport

from ventfreely.main import app
from ventfreely.core.jwt import create_access_token
from ventfreely.db.base import Base
from ventfreely.db.session import engine, SessionLocal, ServiceSessionLocal


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def service_db():
    session = ServiceSessionLocal()
    yield session
    session.close()


@pytest.fixture
def client():
    transport = ASGITransport(app=app)
    return AsyncClient(transport=transport, base_url="http://test")


def _auth_headers(user_id: str, email: str = None) -> dict:
    token = create_access_token(user_id, email=email)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return _auth_headers
