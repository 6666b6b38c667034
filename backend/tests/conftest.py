"""Shared fixtures: in-memory database, API client, and test identities."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "spotterhub-test-secret-key-0123456789abcdef")

from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from spotterhub.core.database import Base, get_db  # noqa: E402
from spotterhub.core.security import Identity, create_token  # noqa: E402
from spotterhub.main import app  # noqa: E402
import spotterhub.models.moderation  # noqa: E402,F401
from spotterhub.models.forum import ForumComment, ForumPost  # noqa: E402


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory schema per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """API client bound to the test database."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


# ==================== Identities ====================


@pytest.fixture
def moderator() -> Identity:
    return Identity(id="M", name="Mia Moderator", roles=["moderator"])


@pytest.fixture
def admin() -> Identity:
    return Identity(id="ADM", name="Ada Admin", roles=["admin"])


@pytest.fixture
def member() -> Identity:
    return Identity(id="U", name="Uma User", roles=[])


@pytest.fixture
def author() -> Identity:
    return Identity(id="A", name="Arlo Author", roles=[])


@pytest.fixture
def anonymous() -> Identity:
    return Identity.anonymous()


def auth(identity: Identity) -> dict[str, str]:
    """Authorization header carrying a token for ``identity``."""
    token = create_token(identity.id, name=identity.name, roles=identity.roles)
    return {"Authorization": f"Bearer {token}"}


# ==================== Content ====================


async def make_post(
    session: AsyncSession,
    post_id: str,
    author: Identity,
    title: str = "Spotting at the threshold",
    **fields,
) -> ForumPost:
    post = ForumPost(
        id=post_id,
        author_id=author.id,
        author_name=author.name,
        title=title,
        content="Best light is late afternoon.",
        tags=[],
        **fields,
    )
    session.add(post)
    await session.flush()
    return post


async def make_comment(
    session: AsyncSession,
    comment_id: str,
    post_id: str,
    author: Identity,
    content: str = "Great shot!",
) -> ForumComment:
    comment = ForumComment(
        id=comment_id,
        post_id=post_id,
        author_id=author.id,
        author_name=author.name,
        content=content,
    )
    session.add(comment)
    await session.flush()
    return comment


@pytest_asyncio.fixture
async def seeded(session_factory, author, member) -> dict[str, str]:
    """Post P123 by the author with two member comments, plus post P5."""
    async with session_factory() as session:
        await make_post(session, "P123", author, title="Heavy metal Sunday")
        await make_comment(session, "C1", "P123", member)
        await make_comment(session, "C2", "P123", member)
        await make_post(session, "P5", author, title="My first A380")
        await session.commit()
    return {"post": "P123", "own_post": "P5", "comment": "C1"}
