import asyncio
from datetime import date
from typing import Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from pawmates import models  # noqa: F401
from pawmates.database import Base, get_db
from pawmates.domain.bookings.schemas import BookingCreate
from pawmates.domain.bookings.service import BookingService
from pawmates.domain.sessions.service import SessionService
from pawmates.main import app
from pawmates.models import (
    BookingSession,
    CodeType,
    GatewayPaymentStatus,
    Payment,
    Service,
    ServiceCode,
)
from pawmates.services.payment_gateway import RazorpayGateway, get_payment_gateway

OWNER_ID = "owner-1"
SITTER_ID = "sitter-1"
START_CODE = "111111"
END_CODE = "222222"


class FakeGateway(RazorpayGateway):
    """Real gateway client with the HTTP call replaced"""

    def __init__(self):
        super().__init__(key_id="rzp_test_key", key_secret="rzp_test_secret", api_url="https://gateway.test")
        self.calls = []
        self.fail = False
        self.interrupt = False

    async def _post(self, path, payload):
        self.calls.append((path, payload))
        if self.interrupt:
            raise asyncio.CancelledError()
        if self.fail:
            raise httpx.ConnectError("gateway unreachable")
        if path == "/orders":
            return {"id": f"order_{len(self.calls)}", "amount": payload["amount"], "status": "created"}
        return {"id": f"rfnd_{len(self.calls)}", "amount": payload["amount"], "status": "processed"}


@pytest.fixture
def engine(tmp_path):
    test_engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


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
def service_item(db):
    item = Service(name="Dog Walking", price=500.0, duration_minutes=60)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


@pytest.fixture
def premium_service(db):
    item = Service(name="Overnight Sitting", price=1000.0, duration_minutes=720)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def booking_request(service: Service, **overrides) -> BookingCreate:
    data = {
        "service_id": service.id,
        "pet_id": "pet-1",
        "start_date": date(2024, 1, 1),
        "time": "09:30",
        "total_price": service.price,
    }
    data.update(overrides)
    return BookingCreate(**data)


def set_codes(db, session_id: str, start: str = START_CODE, end: str = END_CODE) -> None:
    """Replace the random codes with known values"""
    for code in db.query(ServiceCode).filter(ServiceCode.session_id == session_id):
        code.code = start if code.code_type == CodeType.START else end
    db.commit()


def captured_payment(db, service: Service, amount: float, owner_id: str = OWNER_ID) -> Payment:
    payment = Payment(
        owner_id=owner_id,
        service_id=service.id,
        amount=amount,
        gateway_order_id="order_test",
        gateway_payment_id="pay_123",
        status=GatewayPaymentStatus.CAPTURED,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


@pytest.fixture
def make_session(db, gateway):
    """First session of a new booking, moved to the requested status with known codes"""
    def _make(
        service: Service,
        status: str = "CONFIRMED",
        paid: bool = False,
        sitter_id: Optional[str] = SITTER_ID,
        **overrides,
    ) -> BookingSession:
        if paid:
            payment = captured_payment(db, service, overrides.get("total_price", service.price))
            overrides.update(payment_option="pay-now", payment_id=payment.id)
        booking = BookingService(db, gateway).create_booking(OWNER_ID, booking_request(service, **overrides))
        session = booking.sessions[0]
        set_codes(db, session.id)

        lifecycle = SessionService(db)
        if status in ("ASSIGNED", "CONFIRMED"):
            lifecycle.assign(session.id, sitter_id)
        if status == "CONFIRMED":
            lifecycle.confirm(session.id)
        db.refresh(session)
        return session

    return _make


@pytest.fixture
def client(session_factory, gateway):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()
