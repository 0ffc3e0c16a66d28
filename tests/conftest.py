import itertools
from datetime import datetime, timezone

import pytest

from checkout import CheckoutSession, Step
from errors import StorageError
from funnel import resolve_order_intent
from orders import OrderSubmissionService
from routing import PaymentChannelRouter

RESTRICTED = ["Western Cape", "Eastern Cape", "Northern Cape", "KwaZulu-Natal"]

VALID_DETAILS = {
    "first_name": "Thandi",
    "last_name": "Mokoena",
    "email": "thandi@example.co.za",
    "phone": "+27821234567",
    "address": "12 Jacaranda Street",
    "city": "Pretoria",
    "postal_code": "0181",
    "province": "Gauteng",
}


class FakeOrderStore:
    """In-memory stand-in for MongoOrderStore."""

    def __init__(self):
        self.documents = []
        self._ids = itertools.count(1)

    async def insert(self, document):
        saved = {**document, "id": f"order-{next(self._ids)}", "created_at": datetime.now(timezone.utc)}
        self.documents.append(saved)
        return saved

    async def ping(self):
        return True


class FailingOrderStore:
    def __init__(self, message="connection refused"):
        self.message = message
        self.calls = 0

    async def insert(self, document):
        self.calls += 1
        raise StorageError(self.message)

    async def ping(self):
        return False


@pytest.fixture
def store():
    return FakeOrderStore()


@pytest.fixture
def router():
    return PaymentChannelRouter(
        restricted_provinces=RESTRICTED,
        eft_instructions="Email proof of payment to orders@example.com",
        representative_instructions="A representative will contact you",
    )


@pytest.fixture
def service(store):
    return OrderSubmissionService(store)


@pytest.fixture
def make_session(router):
    def _make(params=None, **kwargs):
        return CheckoutSession(resolve_order_intent(params or {}), router, **kwargs)

    return _make


@pytest.fixture
def payment_session(make_session):
    """A session with valid details, moved on to the payment step."""

    def _make(params=None, details=None, **kwargs):
        session = make_session(params, **kwargs)
        assert session.update_customer(**(VALID_DETAILS if details is None else details)) is None
        assert session.confirm_email(session.customer.email) is None
        assert session.advance() is None
        assert session.current_step == Step.PAYMENT
        return session

    return _make
