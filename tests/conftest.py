import os

# przed importem marketplace - settings czyta env przy imporcie
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_secret")
os.environ.setdefault("GATEWAY_RETRY_ATTEMPTS", "3")

from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from marketplace.celery_worker import celery_app
from marketplace.data.database import Base, build_engine
from marketplace.data.models import (
    ArtworkModel,
    CartItemModel,
    CartModel,
    OrderItemModel,
    OrderModel,
)
from marketplace.domain.errors import GatewayUnavailableError, TransactionNotFoundError
from marketplace.domain.schemas import InitializedTransaction, VerifiedTransaction
from marketplace.utils.money import to_minor_units
from marketplace.utils.references import generate_order_number

TEST_SECRET = "sk_test_secret"


class FakeGateway:
    """Bramka w pamieci: referencja -> VerifiedTransaction."""

    secret_key = TEST_SECRET

    def __init__(self):
        self.transactions = {}
        self.verify_calls = []
        self.initialized = []
        self.unavailable_times = 0
        self.fail_initialize = False

    def add(self, reference, status="success", amount=Decimal("0.00"), metadata=None, currency="NGN"):
        self.transactions[reference] = VerifiedTransaction(
            status=status,
            reference=reference,
            amount_minor=to_minor_units(amount),
            currency=currency,
            customer_email="buyer@example.com",
            metadata=metadata or {},
        )

    def verify_transaction(self, reference):
        self.verify_calls.append(reference)
        if self.unavailable_times > 0:
            self.unavailable_times -= 1
            raise GatewayUnavailableError("Payment gateway unreachable: timed out")
        if reference not in self.transactions:
            raise TransactionNotFoundError("Transaction reference not found")
        return self.transactions[reference]

    def initialize_transaction(self, email, amount_minor, reference=None, metadata=None, callback_url=None):
        if self.fail_initialize:
            raise GatewayUnavailableError("Payment gateway error 502")
        self.initialized.append(
            {"email": email, "amount_minor": amount_minor, "reference": reference, "metadata": metadata}
        )
        code = f"ac_{len(self.initialized)}"
        return InitializedTransaction(
            authorization_url=f"https://checkout.paystack.com/{code}",
            access_code=code,
            reference=reference,
        )


class FakeCache:
    def __init__(self):
        self.values = {}
        self.ttls = {}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value, ttl):
        self.values[key] = value
        self.ttls[key] = ttl

    def ttl(self, key):
        return self.ttls.get(key, -2)

    def incr(self, key, ttl):
        current = int(self.values.get(key, 0)) + 1
        self.values[key] = current
        self.ttls.setdefault(key, ttl)
        return current


@pytest.fixture(autouse=True)
def eager_celery():
    celery_app.conf.task_always_eager = True
    yield
    celery_app.conf.task_always_eager = False


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'marketplace.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def cache():
    return FakeCache()


@pytest.fixture
def make_cart(db):
    def _make(user_id="buyer-1", status="active"):
        cart = CartModel(user_id=user_id, status=status, version=1)
        db.add(cart)
        db.commit()
        return cart

    return _make


@pytest.fixture
def make_artwork(db):
    def _make(creator_id="creator-a", price="3000.00", title="Untitled", is_available=True):
        artwork = ArtworkModel(
            creator_id=creator_id,
            title=title,
            price=Decimal(price),
            is_available=is_available,
        )
        db.add(artwork)
        db.commit()
        return artwork

    return _make


@pytest.fixture
def add_cart_item(db):
    def _add(cart, artwork, quantity=1):
        item = CartItemModel(
            cart_id=cart.id,
            artwork_id=artwork.id,
            quantity=quantity,
            unit_price=artwork.price,
        )
        db.add(item)
        db.commit()
        return item

    return _add


@pytest.fixture
def make_order(db):
    """
    lines: [(creator_id, quantity, unit_price), ...]
    total liczony z pozycji, jak przy checkout.
    """

    def _make(lines, reference="ORDER_test_1", buyer_id="buyer-1", cart_id=None, created_at=None):
        total = sum((Decimal(price) * qty for _, qty, price in lines), Decimal("0.00"))
        order = OrderModel(
            order_number=generate_order_number(),
            buyer_id=buyer_id,
            cart_id=cart_id,
            total_amount=total,
            currency="NGN",
            payment_status="pending",
            order_status="pending",
            payment_reference=reference,
        )
        if created_at is not None:
            order.created_at = created_at
        db.add(order)
        db.flush()
        for index, (creator_id, qty, price) in enumerate(lines):
            db.add(
                OrderItemModel(
                    order_id=order.id,
                    artwork_id=f"artwork-{index}",
                    creator_id=creator_id,
                    quantity=qty,
                    unit_price=Decimal(price),
                )
            )
        db.commit()
        return order

    return _make
