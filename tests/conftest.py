"""Pytest fixtures for queue scheduler tests."""
from typing import List, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from shoptracker import models  # noqa: F401
from shoptracker.core.locks import QueueLocks
from shoptracker.database import Base
from shoptracker.models.location import Location
from shoptracker.models.order import Order
from shoptracker.schemas.location import LocationCreate
from shoptracker.schemas.order import OrderCreate
from shoptracker.services.location_service import LocationService
from shoptracker.services.order_service import OrderService


@pytest.fixture
async def engine():
    """In-memory SQLite database shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def locks():
    """Fresh lock registry so tests never share asyncio primitives."""
    return QueueLocks()


@pytest.fixture
async def shop(db) -> List[Location]:
    """
    Three stations in sequence: cutting (primary, auto-queue), welding, paint.
    """
    service = LocationService(db)
    return [
        await service.create_location(LocationCreate(name="Cutting", used_order=10, is_primary=True)),
        await service.create_location(LocationCreate(name="Welding", used_order=20)),
        await service.create_location(LocationCreate(name="Paint", used_order=30)),
    ]


@pytest.fixture
def make_order(db, locks):
    """Factory creating orders through the order service."""

    async def _make(
        order_number: str,
        location_ids: Optional[List[int]] = None,
        total_quantity: int = 10,
    ) -> Order:
        service = OrderService(db, locks=locks)
        return await service.create_order(
            OrderCreate(
                order_number=order_number,
                client="Acme",
                total_quantity=total_quantity,
                selected_location_ids=location_ids or [],
            ),
            actor_id=1,
        )

    return _make
