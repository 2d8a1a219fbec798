import pytest
from datetime import datetime, timedelta
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

from shared_lib.config import SystemConfig
from server.web.app.models import (
    Base, User, Company, Article, Topic, Reply, Job, Report, UserRole
)
from server.web.app.schemas import ModerationUser

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture(scope="function")
async def db_engine(tmp_path):
    """
    Throwaway SQLite database with the schema created from scratch for each
    test. File backed so concurrent sessions get their own connections.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()

@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

@pytest.fixture(scope="function")
async def db_session(session_factory) -> AsyncSession:
    """
    Provide a database session for each test function.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()

@pytest.fixture
def config() -> SystemConfig:
    return SystemConfig()

@pytest.fixture
async def users(db_session: AsyncSession):
    """One user per role, keyed by role name."""
    admin = User(id="admin-1", username="alice", email="alice@example.com", role=UserRole.admin.value)
    moderator = User(id="mod-1", username="morgan", email="morgan@example.com", role=UserRole.moderator.value)
    member = User(id="user-1", username="uma", email="uma@example.com", role=UserRole.user.value)
    db_session.add_all([admin, moderator, member])
    await db_session.commit()
    return {"admin": admin, "moderator": moderator, "user": member}

def as_moderation_user(user: User) -> ModerationUser:
    return ModerationUser(id=user.id, role=user.role, username=user.username)

@pytest.fixture
def admin_user(users) -> ModerationUser:
    return as_moderation_user(users["admin"])

@pytest.fixture
def moderator_user(users) -> ModerationUser:
    return as_moderation_user(users["moderator"])

@pytest.fixture
def regular_user(users) -> ModerationUser:
    return as_moderation_user(users["user"])

@pytest.fixture
async def content(db_session: AsyncSession, users):
    """
    One row of each content type, authored by the regular user.

    Creation times increase in the order article, topic, reply, job.
    """
    author = users["user"]
    company = Company(id="company-1", name="Acme", user_id=author.id)
    article = Article(
        id="a1", title="Release notes", content="Full article body " * 20,
        excerpt="Short excerpt", author_id=author.id, status="pending",
        created_at=BASE_TIME, updated_at=BASE_TIME,
    )
    topic = Topic(
        id="t1", title="Forum topic", content="Topic body", author_id=author.id,
        spam_score=80,
        created_at=BASE_TIME + timedelta(minutes=1), updated_at=BASE_TIME + timedelta(minutes=1),
    )
    reply = Reply(
        id="r1", topic_id="t1", content="Reply body", author_id=author.id,
        spam_score=10,
        created_at=BASE_TIME + timedelta(minutes=2), updated_at=BASE_TIME + timedelta(minutes=2),
    )
    job = Job(
        id="j1", title="Backend engineer", description="Job description", company_id=company.id,
        status="pending",
        created_at=BASE_TIME + timedelta(minutes=3), updated_at=BASE_TIME + timedelta(minutes=3),
    )
    db_session.add_all([company, article, topic, reply, job])
    await db_session.commit()
    return {"article": article, "topic": topic, "reply": reply, "job": job, "company": company}

@pytest.fixture
def add_report(db_session: AsyncSession, users):
    """Factory adding an open report against a reportable."""
    async def _add(reportable_type: str, reportable_id: str, reason: str = "spam",
                   status: str = "pending", created_at: datetime = BASE_TIME):
        report = Report(
            reportable_type=reportable_type,
            reportable_id=reportable_id,
            reason=reason,
            status=status,
            reporter_id=users["user"].id,
            created_at=created_at,
        )
        db_session.add(report)
        await db_session.commit()
        return report
    return _add
