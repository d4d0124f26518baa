# tests/conftest.py
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import os
import uuid
from decimal import Decimal
from typing import Generator

import pytest
import pytest_asyncio
import httpx
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.ext.asyncio import AsyncSession

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("ASYNC_DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("INTERNAL_API_KEY", "test-internal-api-key-0123456789")
os.environ.setdefault("REMINDER_DISPATCH_CONCURRENCY", "1")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")
os.environ.setdefault("EMAILS_ENABLED", "false")

from cart_recovery.main import app
from cart_recovery.core.config import settings
from cart_recovery.db.base import Base
from cart_recovery.db.session_async import AsyncSessionLocal
from cart_recovery.models.user import User
from cart_recovery.models.product import Product
from cart_recovery.models.cart import Cart, CartItem
from cart_recovery.schemas.abandoned_cart import Notification

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

sync_engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=sync_engine)

_RANDOM_EMAIL = object()


# ---------- Fixtures ----------
@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create the SQLite tables once per test session."""
    import cart_recovery.models.abandoned_cart  # noqa: F401

    Base.metadata.drop_all(bind=sync_engine)
    Base.metadata.create_all(bind=sync_engine)
    yield
    Base.metadata.drop_all(bind=sync_engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with sync_engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Short-lived sync session used to seed host data."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest_asyncio.fixture(scope="function")
async def client():
    """AsyncClient bound to the app, sending the internal API key."""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
        headers={settings.INTERNAL_API_KEY_HEADER: settings.INTERNAL_API_KEY},
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def anonymous_client():
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(scope="function")
async def async_db_session() -> AsyncSession:
    """AsyncSession for direct service calls."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()


# --- Host data factories (sync, committed before the services run) ---

@pytest.fixture(scope="function")
def make_user(db_session: Session):
    def _make(*, email=_RANDOM_EMAIL, full_name: str | None = "Jane Buyer") -> User:
        if email is _RANDOM_EMAIL:
            email = f"buyer-{uuid.uuid4()}@example.com"
        user = User(email=email, full_name=full_name, is_active=True)
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture(scope="function")
def seller(make_user) -> User:
    return make_user(full_name="Sam Seller")


@pytest.fixture(scope="function")
def make_product(db_session: Session, seller: User):
    def _make(*, title: str = "Vintage Denim Jacket", price: str = "45.00", images=None) -> Product:
        product = Product(
            seller_id=seller.id,
            title=title,
            price=Decimal(price),
            images=images if images is not None else [f"https://cdn.example.com/{uuid.uuid4()}.jpg"],
            active=True,
        )
        db_session.add(product)
        db_session.commit()
        return product

    return _make


@pytest.fixture(scope="function")
def fill_cart(db_session: Session):
    """Put ``(product, quantity)`` lines into the user's active cart, creating it if needed."""

    def _fill(user: User, *lines: tuple[Product, int]) -> Cart:
        cart = db_session.query(Cart).filter(Cart.user_id == user.id).first()
        if cart is None:
            cart = Cart(user_id=user.id)
            db_session.add(cart)
            db_session.flush()
        for product, quantity in lines:
            db_session.add(CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity))
        db_session.commit()
        return cart

    return _fill


@pytest.fixture(scope="function")
def buyer_with_cart(make_user, make_product, fill_cart) -> User:
    """A buyer holding one $45.00 jacket and two $12.50 mugs."""
    buyer = make_user()
    jacket = make_product(title="Vintage Denim Jacket", price="45.00")
    mug = make_product(title="Retro Coffee Mug", price="12.50")
    fill_cart(buyer, (jacket, 1), (mug, 2))
    return buyer


class RecordingSender:
    """In-memory notification sender."""

    def __init__(self, *, accept: bool = True, error: Exception | None = None) -> None:
        self.accept = accept
        self.error = error
        self.sent: list[Notification] = []

    async def send(self, notification: Notification) -> bool:
        if self.error is not None:
            raise self.error
        self.sent.append(notification)
        return self.accept


@pytest.fixture(scope="function")
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture(scope="function")
def make_sender():
    return RecordingSender
