"""Shared fixtures: a frozen clock, a scheduler on it, and an in-memory store."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import memory_curve.models  # noqa: F401  registers tables on Base.metadata
from memory_curve.clock import FixedClock
from memory_curve.database import Base
from memory_curve.sm2 import MemoryCurveScheduler

NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


class SteppingClock:
    """Clock that can be moved forward between calls."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def scheduler(clock):
    return MemoryCurveScheduler(clock=clock)


@pytest.fixture
def stepping_clock():
    return SteppingClock(NOW)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
