import asyncio
from datetime import date

import pytest
from pydantic import ValidationError

from pawmates.domain.bookings import service as booking_service_module
from pawmates.domain.bookings.schemas import EstimateRequest, PaymentOrderCreate
from pawmates.domain.bookings.service import BookingService
from pawmates.models import (
    Booking,
    BookingSession,
    CodeType,
    GatewayPaymentStatus,
    Payment,
    ServiceCode,
)
from pawmates.shared.exceptions import (
    EmptyScheduleError,
    InvalidPatternError,
    NotCancellableError,
    NotFoundError,
    PaymentVerificationError,
    PriceMismatchError,
)

from .conftest import OWNER_ID, booking_request, captured_payment

WEEKLY_JANUARY = {
    "is_recurring": True,
    "recurring_pattern": "weekly_1_monday,thursday",
    "start_date": date(2024, 1, 1),
    "end_date": date(2024, 1, 31),
}


def test_one_time_booking_creates_single_session_with_two_codes(db, service_item):
    booking = BookingService(db).create_booking(OWNER_ID, booking_request(service_item))

    assert not booking.is_recurring
    assert booking.expected_total == 500.0
    assert len(booking.sessions) == 1

    session = booking.sessions[0]
    assert session.sequence_number == 1
    assert session.status == "PENDING"
    assert session.payment_status == "PENDING"
    assert session.unit_price == 500.0
    assert session.session_time == "09:30"

    codes = db.query(ServiceCode).filter(ServiceCode.session_id == session.id).all()
    assert sorted(c.code_type for c in codes) == [CodeType.END, CodeType.START]
    for code in codes:
        assert len(code.code) == 6 and code.code.isdigit()
        assert not code.is_used
        assert code.expires_at is None


def test_recurring_booking_materializes_every_session(db, service_item):
    booking = BookingService(db).create_booking(
        OWNER_ID, booking_request(service_item, total_price=4500.0, **WEEKLY_JANUARY)
    )

    assert booking.is_recurring
    assert booking.recurring_pattern == "weekly_1_monday,thursday"
    assert booking.expected_total == 4500.0
    assert [s.session_date.day for s in booking.sessions] == [1, 4, 8, 11, 15, 18, 22, 25, 29]
    assert [s.sequence_number for s in booking.sessions] == list(range(1, 10))
    assert db.query(ServiceCode).count() == 18


def test_unit_price_comes_from_catalog(db, service_item):
    with pytest.raises(PriceMismatchError):
        BookingService(db).create_booking(OWNER_ID, booking_request(service_item, total_price=1.0))

    assert db.query(Booking).count() == 0


def test_declared_total_mismatch_creates_nothing(db, service_item):
    with pytest.raises(PriceMismatchError):
        BookingService(db).create_booking(
            OWNER_ID, booking_request(service_item, total_price=4000.0, **WEEKLY_JANUARY)
        )

    assert db.query(Booking).count() == 0
    assert db.query(BookingSession).count() == 0


def test_invalid_pattern_rejected(db, service_item):
    with pytest.raises(InvalidPatternError):
        BookingService(db).create_booking(
            OWNER_ID,
            booking_request(service_item, **{**WEEKLY_JANUARY, "recurring_pattern": "weekly_1_funday"}),
        )


def test_empty_recurring_schedule_rejected(db, service_item):
    request = booking_request(
        service_item, total_price=0.0, **{**WEEKLY_JANUARY, "end_date": date(2024, 1, 1)}
    )

    with pytest.raises(EmptyScheduleError):
        BookingService(db).create_booking(OWNER_ID, request)

    assert db.query(Booking).count() == 0


def test_unknown_service(db, service_item):
    request = booking_request(service_item, service_id="missing")

    with pytest.raises(NotFoundError):
        BookingService(db).create_booking(OWNER_ID, request)


def test_failure_midway_leaves_no_partial_sessions(db, service_item, monkeypatch):
    calls = {"count": 0}
    real_generate = booking_service_module.generate_service_code

    def flaky_code():
        calls["count"] += 1
        if calls["count"] == 7:
            raise RuntimeError("database went away")
        return real_generate()

    monkeypatch.setattr(booking_service_module, "generate_service_code", flaky_code)

    with pytest.raises(RuntimeError):
        BookingService(db).create_booking(
            OWNER_ID, booking_request(service_item, total_price=4500.0, **WEEKLY_JANUARY)
        )

    assert db.query(Booking).count() == 0
    assert db.query(BookingSession).count() == 0
    assert db.query(ServiceCode).count() == 0


def test_code_expiry_follows_scheduled_start(db, service_item, monkeypatch):
    monkeypatch.setattr(booking_service_module, "SERVICE_CODE_EXPIRY_HOURS", 12)

    booking = BookingService(db).create_booking(OWNER_ID, booking_request(service_item))

    code = db.query(ServiceCode).filter(ServiceCode.session_id == booking.sessions[0].id).first()
    assert code.expires_at.isoformat() == "2024-01-01T21:30:00"


def test_pay_now_links_captured_payment(db, service_item):
    payment = captured_payment(db, service_item, 4500.0)

    booking = BookingService(db).create_booking(
        OWNER_ID,
        booking_request(
            service_item,
            total_price=4500.0,
            payment_option="pay-now",
            payment_id=payment.id,
            **WEEKLY_JANUARY,
        ),
    )

    assert booking.payment_status == "PAID"
    assert all(s.payment_status == "PAID" for s in booking.sessions)
    db.refresh(payment)
    assert payment.booking_id == booking.id
    assert payment.session_id is None


def test_pay_now_one_time_links_session(db, service_item):
    payment = captured_payment(db, service_item, 500.0)

    booking = BookingService(db).create_booking(
        OWNER_ID, booking_request(service_item, payment_option="pay-now", payment_id=payment.id)
    )

    db.refresh(payment)
    assert payment.session_id == booking.sessions[0].id


def test_pay_now_requires_matching_amount(db, service_item):
    payment = captured_payment(db, service_item, 4000.0)

    with pytest.raises(PaymentVerificationError):
        BookingService(db).create_booking(
            OWNER_ID,
            booking_request(
                service_item,
                total_price=4500.0,
                payment_option="pay-now",
                payment_id=payment.id,
                **WEEKLY_JANUARY,
            ),
        )

    assert db.query(Booking).count() == 0


def test_pay_now_rejects_uncaptured_or_reused_payment(db, service_item):
    payment = captured_payment(db, service_item, 500.0)
    BookingService(db).create_booking(
        OWNER_ID, booking_request(service_item, payment_option="pay-now", payment_id=payment.id)
    )

    with pytest.raises(PaymentVerificationError):
        BookingService(db).create_booking(
            OWNER_ID, booking_request(service_item, payment_option="pay-now", payment_id=payment.id)
        )

    pending = Payment(
        owner_id=OWNER_ID,
        service_id=service_item.id,
        amount=500.0,
        status=GatewayPaymentStatus.CREATED,
    )
    db.add(pending)
    db.commit()
    with pytest.raises(PaymentVerificationError):
        BookingService(db).create_booking(
            OWNER_ID, booking_request(service_item, payment_option="pay-now", payment_id=pending.id)
        )


def test_pay_now_requires_payment_reference(service_item):
    with pytest.raises(ValidationError):
        booking_request(service_item, payment_option="pay-now")


def test_recurring_requires_pattern_and_end_date(service_item):
    with pytest.raises(ValidationError):
        booking_request(service_item, is_recurring=True, end_date=date(2024, 2, 1))
    with pytest.raises(ValidationError):
        booking_request(service_item, is_recurring=True, recurring_pattern="weekly_1_monday")


def test_estimate_uses_same_schedule(db, service_item):
    estimate = BookingService(db).estimate(
        EstimateRequest(service_id=service_item.id, **WEEKLY_JANUARY)
    )

    assert estimate["session_count"] == 9
    assert estimate["expected_total"] == 4500.0
    assert estimate["session_dates"][0] == date(2024, 1, 1)
    assert estimate["description"] == "Every week on Monday, Thursday"


def test_payment_order_charges_server_total(db, service_item, gateway):
    data = PaymentOrderCreate(service_id=service_item.id, total_price=4500.0, **WEEKLY_JANUARY)

    payment = asyncio.run(BookingService(db, gateway).create_payment_order(OWNER_ID, data))

    assert payment.status == GatewayPaymentStatus.CREATED
    assert payment.amount == 4500.0
    path, payload = gateway.calls[0]
    assert path == "/orders"
    assert payload["amount"] == 450000
    assert payload["currency"] == "INR"


def test_payment_order_rejects_tampered_total(db, service_item, gateway):
    data = PaymentOrderCreate(service_id=service_item.id, total_price=4000.0, **WEEKLY_JANUARY)

    with pytest.raises(PriceMismatchError):
        asyncio.run(BookingService(db, gateway).create_payment_order(OWNER_ID, data))

    assert gateway.calls == []
    assert db.query(Payment).count() == 0


def test_recurring_booking_cannot_be_cancelled_whole(db, service_item, gateway):
    booking = BookingService(db).create_booking(
        OWNER_ID, booking_request(service_item, total_price=4500.0, **WEEKLY_JANUARY)
    )

    with pytest.raises(NotCancellableError):
        asyncio.run(BookingService(db, gateway).cancel_booking(booking.id, OWNER_ID, "changed plans"))

    assert all(s.status == "PENDING" for s in booking.sessions)


def test_one_time_booking_cancel_cancels_its_session(db, service_item, gateway):
    booking = BookingService(db).create_booking(OWNER_ID, booking_request(service_item))

    session, refund = asyncio.run(
        BookingService(db, gateway).cancel_booking(booking.id, OWNER_ID, "changed plans")
    )

    assert refund is None
    assert session.status == "USERCANCELLED"
    assert session.cancellation_reason == "changed plans"
