"""Fixtures that run the FastAPI app in-process over the in-memory repositories."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import HTTPException, Request, status
from httpx import ASGITransport, AsyncClient

from portal.auth import decode_jwt, get_current_user
from portal.database import get_db
from portal.models import User
from portal.moderation.api import get_submission_service


@pytest.fixture
def users(owner, other_user, moderator, admin) -> dict[int, User]:
    return {u.id: u for u in (owner, other_user, moderator, admin)}


@pytest.fixture
def app(service, users, db_session):
    """The portal app with database, auth and service dependencies overridden."""
    from portal.main import app

    async def _db():
        yield db_session

    async def _current_user(request: Request) -> User:
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Missing or invalid Authorization header",
            )
        payload = decode_jwt(header.removeprefix("Bearer "))
        user = users.get(int(payload["sub"]))
        if user is None:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User not found or suspended")
        return user

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_current_user] = _current_user
    app.dependency_overrides[get_submission_service] = lambda: service
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def http(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
