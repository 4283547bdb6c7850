"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database. The settings module
requires DATABASE_URL and SECRET_KEY, so they are set before anything from
storefront is imported.
"""
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key"

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional, Tuple
import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from storefront.core.security import create_access_token
from storefront.database import Base, get_db
from storefront.main import app
from storefront.models import (
    Address,
    Order,
    OrderItem,
    Permission,
    Role,
    RolePermission,
    User,
    VietnameseLocation,
)


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
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


class Factory:
    """Creates and commits test rows."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        return obj

    async def user(
        self,
        role: str = "customer",
        role_id: Optional[uuid.UUID] = None,
        is_active: bool = True,
    ) -> User:
        n = self._next()
        return await self._save(User(
            email=f"user{n}@example.com",
            first_name=f"User{n}",
            last_name="Test",
            phone="0901234567",
            role=role,
            role_id=role_id,
            is_active=is_active,
        ))

    async def order(
        self,
        user: User,
        payment_method: str = "cod",
        status: str = "pending",
        payment_status: str = "pending",
        created_at: Optional[datetime] = None,
    ) -> Order:
        n = self._next()
        order = Order(
            order_number=f"ORD{n:06d}",
            user_id=user.id,
            status=status,
            payment_method=payment_method,
            payment_status=payment_status,
            subtotal=Decimal("250000"),
            shipping_amount=Decimal("30000"),
            total_amount=Decimal("280000"),
            created_at=created_at or datetime.now(timezone.utc),
        )
        order.items.append(OrderItem(
            name="Yonex Astrox 88D",
            sku=f"SKU-{n}",
            price=Decimal("250000"),
            quantity=1,
            subtotal=Decimal("250000"),
        ))
        return await self._save(order)

    async def address(
        self,
        user: User,
        is_default: bool = False,
        created_at: Optional[datetime] = None,
    ) -> Address:
        n = self._next()
        return await self._save(Address(
            user_id=user.id,
            receiver_name=f"Receiver {n}",
            phone="0912345678",
            province="Cần Thơ",
            ward="Ninh Kiều",
            detail_address=f"{n} Trần Chiên",
            is_default=is_default,
            created_at=created_at or datetime.now(timezone.utc),
        ))

    async def addresses(self, user: User, count: int, default_index: int = 0):
        """`count` addresses created one minute apart, oldest first."""
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        return [
            await self.address(
                user,
                is_default=(i == default_index),
                created_at=base + timedelta(minutes=i),
            )
            for i in range(count)
        ]

    async def location(self, name: str, type: str, parent_id: Optional[int] = None) -> VietnameseLocation:
        return await self._save(VietnameseLocation(name=name, type=type, parent_id=parent_id))

    async def role(self, name: str, permissions: Iterable[Tuple[str, str]] = ()) -> Role:
        role = Role(name=name)
        for resource, action in permissions:
            role.role_permissions.append(
                RolePermission(permission=Permission(resource=resource, action=action))
            )
        return await self._save(role)


@pytest.fixture
def factory(db):
    return Factory(db)


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}
    return _headers
