import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from tailauth.db.database import Base, get_db
from tailauth.db.enums import MembershipStatus
from tailauth.db.models import User, TeamMembership
from tailauth.main import app
from fakes import default_store


@pytest.fixture(scope="session")
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///./test_tailauth.db",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def clean_tables(test_engine):
    """Empty every table before the test (schema is kept)."""
    async with test_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())
    yield


@pytest.fixture
async def test_session(test_engine, clean_tables):
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(test_engine, test_session):
    """HTTP client whose requests get a fresh session on the test engine."""
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def team(test_session):
    """alice owns the account; bob is an accepted ADMIN, carol an accepted MEMBER,
    dave has a PENDING invitation, zed owns an unrelated account."""
    users = {
        name: User(id=name, email=f"{name}@example.com", name=name.capitalize())
        for name in ("alice", "bob", "carol", "dave", "zed")
    }
    test_session.add_all(users.values())
    await test_session.flush()

    test_session.add_all([
        TeamMembership(
            id="m-bob", member_user_id="bob", email="bob@example.com", name="Bob",
            role="ADMIN", status=MembershipStatus.accepted.value, invited_by_user_id="alice",
        ),
        TeamMembership(
            id="m-carol", member_user_id="carol", email="carol@example.com", name="Carol",
            role="MEMBER", status=MembershipStatus.accepted.value, invited_by_user_id="alice",
        ),
        TeamMembership(
            id="m-dave", member_user_id="dave", email="dave@example.com", name="Dave",
            role="ADMIN", status=MembershipStatus.pending.value, invited_by_user_id="alice",
        ),
    ])
    await test_session.commit()
    return users


@pytest.fixture
def store():
    return default_store()
