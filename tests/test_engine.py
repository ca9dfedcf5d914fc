"""Engine tests — pool choice per SQLite flavour, session isolation on files."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from taskboard.db.engine import build_engine, init_models, is_memory_sqlite
from taskboard.db.models import Task


def test_memory_urls_are_detected():
    assert is_memory_sqlite("sqlite+aiosqlite:///:memory:")
    assert is_memory_sqlite("sqlite+aiosqlite://")
    assert not is_memory_sqlite("sqlite+aiosqlite:///./taskboard.db")


@pytest.mark.asyncio
async def test_only_memory_sqlite_shares_one_connection(tmp_path):
    memory = build_engine("sqlite+aiosqlite:///:memory:")
    on_disk = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'pool.db'}")
    try:
        assert isinstance(memory.pool, StaticPool)
        assert not isinstance(on_disk.pool, StaticPool)
    finally:
        await memory.dispose()
        await on_disk.dispose()


@pytest.mark.asyncio
async def test_file_database_sessions_do_not_share_a_transaction(tmp_path):
    """One session's commit must not persist another session's pending flush."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'isolation.db'}")
    await init_models(engine)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    when = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)

    try:
        async with factory() as first, factory() as second:
            first.add(Task(title="half done", start_at=when, end_at=when))
            await first.flush()

            assert await second.scalar(select(func.count(Task.id))) == 0
            await second.commit()

            await first.rollback()

        async with factory() as check:
            assert await check.scalar(select(func.count(Task.id))) == 0
    finally:
        await engine.dispose()
