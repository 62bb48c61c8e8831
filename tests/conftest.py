"""
Pytest configuration and fixtures
"""

import os
import pytest
import pytest_asyncio
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool, StaticPool
from models.base import Base
from models.project import Project, Package
from typing import AsyncGenerator

# In-memory SQLite by default; point at PostgreSQL with TEST_DATABASE_URL
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {"poolclass": NullPool}  # Disable connection pooling for tests


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine"""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, **_engine_options(TEST_DATABASE_URL))

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_project(db_session):
    """Insert a project (and optional packages) and return it"""
    counter = {"copr_id": 1000}

    async def _make(owner="atim", name="lazygit", packages=(), **fields):
        counter["copr_id"] += 1
        now = datetime.utcnow()
        project = Project(
            copr_id=fields.pop("copr_id", counter["copr_id"]),
            owner=owner,
            name=name,
            full_name=f"{owner}/{name}",
            created_at=fields.pop("created_at", now),
            updated_at=fields.pop("updated_at", now),
            **fields
        )
        db_session.add(project)
        await db_session.flush()
        for pkg_name in packages:
            db_session.add(Package(project_id=project.id, name=pkg_name))
        await db_session.commit()
        return project

    return _make


@pytest.fixture
def sample_dump():
    """pg_dump text with three COPY sections"""
    return "\n".join([
        "-- PostgreSQL database dump",
        "SET statement_timeout = 0;",
        "COPY public.copr_score (id, copr_id, user_id, score) FROM stdin;",
        "1\t1001\t10\t1",
        "2\t1001\t11\t1",
        "3\t1002\t12\t-1",
        "\\.",
        "",
        "COPY public.build (id, copr_id, submitted_on) FROM stdin;",
        "500\t1001\t1700000000",
        "\\.",
        "",
        "COPY public.counter_stat (name, counter_type, counter) FROM stdin;",
        "project_rpms_dl_stat:hset::atim@lazygit\tproject_rpms_dl\t50000",
        "repo_dl_stat::atim@lazygit:fedora-40-x86_64\trepo_dl\t300",
        "repo_dl_stat::atim@lazygit:fedora-41-x86_64\trepo_dl\t500",
        "chroot_rpms_dl_stat:hset::atim@lazygit:fedora-40\tchroot_rpms_dl\t999",
        "\\.",
        "",
    ])
