"""
Shared fixtures: a throwaway SQLite database, the app and an HTTP client.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import text

from api_auth.base_microservice import ServiceContext, Settings
from api_auth.main import create_app
from api_auth.auth.users import UserCreate, UserService

NEW_USER = {
    "name": "Marco Antonio Bruno da Silva",
    "email": "marco.bruno.br@gmail.com",
    "password": "q1w2e3r4",
}


def read_token_cookie(response, cookie_name: str = "jwt"):
    """Return the raw Set-Cookie header for ``cookie_name`` and the token it carries."""
    for header in response.headers.get_list("set-cookie"):
        if header.startswith(f"{cookie_name}="):
            return header, header.split(";", 1)[0].split("=", 1)[1]
    return None, None


@pytest.fixture
def token_from():
    return read_token_cookie


@pytest.fixture
def login(client):
    """Log a user in and return the issued token."""
    async def _login(user):
        response = await client.post("/api/auth/login", json={
            "email": user["email"],
            "password": user["password"]
        })
        return read_token_cookie(response)[1]
    return _login


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'auth.db'}",
        jwt_secret_key="api-auth-test-secret-key-0123456789",
        bcrypt_rounds=4,
    )


@pytest_asyncio.fixture
async def context(settings):
    ctx = ServiceContext(settings)
    await ctx.create_tables()
    yield ctx
    await ctx.dispose()


@pytest_asyncio.fixture
async def broken_database(context):
    """Drop the users table so every user query fails."""
    async with context.engine.begin() as conn:
        await conn.execute(text("DROP TABLE users"))
    yield context


@pytest_asyncio.fixture
async def registered_user(context):
    async with context.session_factory() as db:
        await UserService.create_user(UserCreate(**NEW_USER), db, rounds=4)
    yield dict(NEW_USER)
    async with context.session_factory() as db:
        await UserService.delete_all(db)


@pytest_asyncio.fixture
async def client(context):
    # ASGITransport does not run the lifespan; the context fixture already created the tables
    app = create_app(context=context)
    transport = ASGITransport(app=app)
    async with AsyncClient(base_url="https://test", transport=transport) as ac:
        yield ac
