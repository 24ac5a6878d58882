"""
Booking service - Business logic for booking creation and payment orders

Every price shown, charged or materialized goes through _schedule(), which
parses the pattern once and expands it with the single date generator.
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...config import CURRENCY, PRICE_TOLERANCE, SERVICE_CODE_EXPIRY_HOURS
from ...models import (
    Booking,
    CodeType,
    GatewayPaymentStatus,
    Payment,
    PaymentStatus,
    Service,
    SessionStatus,
)
from ...services.payment_gateway import RazorpayGateway
from ...shared.exceptions import (
    EmptyScheduleError,
    NotCancellableError,
    NotFoundError,
    PaymentGatewayError,
    PaymentVerificationError,
)
from ...shared.validators import to_minor_units
from ..recurrence import (
    RecurrenceRule,
    SessionSlot,
    describe_rule,
    expected_total,
    generate,
    parse_pattern,
    validate_price,
)
from ..sessions.refunds import ACTOR_OWNER, CancellationService
from .repository import BookingRepository
from .schemas import PAY_NOW, BookingCreate, ScheduleFields

logger = logging.getLogger(__name__)


def generate_service_code() -> str:
    """Random 6-digit code (100000-999999)"""
    return str(100000 + secrets.randbelow(900000))


class Schedule:
    """A priced schedule: catalog service, parsed rule, slots and expected total"""

    def __init__(
        self,
        service: Service,
        rule: Optional[RecurrenceRule],
        slots: list[SessionSlot],
        total: float,
    ):
        self.service = service
        self.rule = rule
        self.slots = slots
        self.total = total

    @property
    def unit_price(self) -> float:
        return self.service.price


class BookingService:
    """Service layer for booking operations"""

    def __init__(self, db: Session, gateway: Optional[RazorpayGateway] = None):
        self.db = db
        self.gateway = gateway
        self.repo = BookingRepository()

    def _schedule(self, data: ScheduleFields) -> Schedule:
        service = self.repo.get_active_service(self.db, data.service_id)
        if not service:
            raise NotFoundError("Service not found")

        if not data.is_recurring:
            rule = None
            slots = [SessionSlot(date=data.start_date, sequence_number=1)]
        else:
            rule = parse_pattern(data.recurring_pattern)
            slots = generate(rule, data.start_date, data.end_date)

        total = expected_total(rule, data.start_date, data.end_date, service.price)
        return Schedule(service, rule, slots, total)

    # ------------------------------------------------------------------
    # Estimates & payment orders
    # ------------------------------------------------------------------
    def estimate(self, data: ScheduleFields) -> dict:
        """Session dates and expected total, exactly as creation would price them"""
        schedule = self._schedule(data)
        return {
            "service_id": schedule.service.id,
            "unit_price": schedule.unit_price,
            "session_count": len(schedule.slots),
            "session_dates": [slot.date for slot in schedule.slots],
            "expected_total": schedule.total,
            "recurring_pattern": schedule.rule.to_pattern() if schedule.rule else None,
            "description": describe_rule(schedule.rule) if schedule.rule else None,
        }

    async def create_payment_order(self, owner_id: str, data: ScheduleFields) -> Payment:
        """
        Validate the displayed total and open a gateway order for it.

        The order amount is always the server-side expected total.
        """
        schedule = self._schedule(data)
        if schedule.rule is not None and not schedule.slots:
            raise EmptyScheduleError()
        validate_price(schedule.total, data.total_price)

        if self.gateway is None:
            raise PaymentGatewayError("Payment gateway not configured")

        amount_minor_units = to_minor_units(schedule.total)
        receipt = f"rcpt_{secrets.token_hex(8)}"
        order = await self.gateway.create_order(
            amount_minor_units,
            receipt,
            notes={
                "owner_id": owner_id,
                "service_id": schedule.service.id,
                "sessions": str(len(schedule.slots)),
            },
        )

        try:
            payment = self.repo.add_payment(
                self.db,
                owner_id=owner_id,
                service_id=schedule.service.id,
                amount=schedule.total,
                currency=CURRENCY,
                gateway_order_id=order["id"],
                status=GatewayPaymentStatus.CREATED,
                gateway_response=order,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"💳 Payment order {order['id']} for {schedule.total:.2f} "
            f"({len(schedule.slots)} session(s)) created for owner {owner_id}"
        )
        return payment

    def verify_payment(
        self, owner_id: str, payment_id: str, gateway_order_id: str, gateway_payment_id: str, signature: str
    ) -> Payment:
        """Mark a payment CAPTURED once the checkout signature checks out"""
        payment = self.repo.get_payment_for_owner(self.db, payment_id, owner_id)
        if not payment:
            raise NotFoundError("Payment not found")

        if payment.status == GatewayPaymentStatus.CAPTURED:
            if payment.gateway_payment_id == gateway_payment_id:
                return payment
            raise PaymentVerificationError("Payment already captured")

        if payment.gateway_order_id != gateway_order_id:
            raise PaymentVerificationError("Order does not match this payment")

        if self.gateway is None or not self.gateway.verify_payment_signature(
            gateway_order_id, gateway_payment_id, signature
        ):
            logger.warning(f"⚠️ Invalid payment signature for payment {payment.id}")
            raise PaymentVerificationError("Invalid payment signature")

        payment.status = GatewayPaymentStatus.CAPTURED
        payment.gateway_payment_id = gateway_payment_id
        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"✅ Payment {payment.id} captured ({gateway_payment_id})")
        return payment

    # ------------------------------------------------------------------
    # Booking creation
    # ------------------------------------------------------------------
    def _verify_captured_payment(self, owner_id: str, payment_id: str, schedule: Schedule) -> Payment:
        payment = self.repo.get_payment_for_owner(self.db, payment_id, owner_id)
        if not payment or payment.status != GatewayPaymentStatus.CAPTURED:
            raise PaymentVerificationError("Payment has not been captured")
        if payment.service_id != schedule.service.id:
            raise PaymentVerificationError("Payment was made for a different service")
        if payment.booking_id is not None:
            raise PaymentVerificationError("Payment is already linked to a booking")
        if abs(payment.amount - schedule.total) > PRICE_TOLERANCE + 1e-9:
            logger.warning(
                f"❌ Payment {payment.id} amount {payment.amount} does not cover {schedule.total}"
            )
            raise PaymentVerificationError("Payment amount does not match the booking total")
        return payment

    def create_booking(self, owner_id: str, data: BookingCreate) -> Booking:
        """
        Create a booking with all of its sessions and codes in one transaction.

        Steps:
            1. Price from the catalog, never from the client
            2. Parse the pattern and generate the session dates
            3. Validate the declared total against the recomputed one
            4. Verify the captured payment for pay-now bookings
            5. Persist the booking, N sessions and 2N codes, then commit once

        Any failure rolls everything back; a truncated session set is never left behind.
        """
        schedule = self._schedule(data)

        if schedule.rule is not None and not schedule.slots:
            logger.warning(f"⚠️ Pattern {data.recurring_pattern} yields no sessions for owner {owner_id}")
            raise EmptyScheduleError()

        validate_price(schedule.total, data.total_price)

        paid = data.payment_option == PAY_NOW
        payment = None
        if paid:
            payment = self._verify_captured_payment(owner_id, data.payment_id, schedule)

        payment_status = PaymentStatus.PAID if paid else PaymentStatus.PENDING
        duration = data.duration_minutes or schedule.service.duration_minutes

        try:
            booking = self.repo.add_booking(
                self.db,
                owner_id=owner_id,
                pet_id=data.pet_id,
                service_id=schedule.service.id,
                address_id=data.address_id,
                start_date=data.start_date,
                end_date=data.end_date if schedule.rule else None,
                time=data.time,
                duration_minutes=duration,
                is_recurring=schedule.rule is not None,
                recurring_pattern=schedule.rule.to_pattern() if schedule.rule else None,
                declared_total=data.total_price,
                expected_total=schedule.total,
                payment_option=data.payment_option,
                payment_status=payment_status,
                notes=data.notes,
            )

            sessions = []
            for slot in schedule.slots:
                session = self.repo.add_session(
                    self.db,
                    booking_id=booking.id,
                    owner_id=owner_id,
                    sequence_number=slot.sequence_number,
                    session_date=slot.date,
                    session_time=data.time,
                    duration_minutes=duration,
                    unit_price=schedule.unit_price,
                    status=SessionStatus.PENDING,
                    payment_status=payment_status,
                )
                expires_at = self._code_expiry(slot, data.time)
                for code_type in (CodeType.START, CodeType.END):
                    self.repo.add_code(
                        self.db,
                        session_id=session.id,
                        code_type=code_type,
                        code=generate_service_code(),
                        expires_at=expires_at,
                    )
                sessions.append(session)

            if payment is not None:
                single_session_id = sessions[0].id if len(sessions) == 1 else None
                if not self.repo.link_payment(self.db, payment.id, booking.id, single_session_id):
                    raise PaymentVerificationError("Payment is already linked to a booking")

            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"❌ Booking creation rolled back for owner {owner_id}")
            raise

        self.db.refresh(booking)
        logger.info(
            f"✅ Booking {booking.id} created with {len(sessions)} session(s), "
            f"total {schedule.total:.2f} ({data.payment_option})"
        )
        return booking

    @staticmethod
    def _code_expiry(slot: SessionSlot, time_of_day: str) -> Optional[datetime]:
        if not SERVICE_CODE_EXPIRY_HOURS:
            return None
        hours, minutes = (int(part) for part in time_of_day.split(":"))
        scheduled = datetime.combine(slot.date, datetime.min.time()) + timedelta(
            hours=hours, minutes=minutes
        )
        return scheduled + timedelta(hours=SERVICE_CODE_EXPIRY_HOURS)

    # ------------------------------------------------------------------
    # Queries & cancellation
    # ------------------------------------------------------------------
    def get_booking(self, booking_id: str, owner_id: str) -> Booking:
        booking = self.repo.get_booking_for_owner(self.db, booking_id, owner_id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def get_bookings(self, owner_id: str, limit: int = 50) -> list[Booking]:
        return self.repo.get_bookings_for_owner(self.db, owner_id, limit)

    def get_codes(self, booking: Booking) -> dict[str, dict[str, str]]:
        return self.repo.get_codes_by_session(self.db, [s.id for s in booking.sessions])

    async def cancel_booking(self, booking_id: str, owner_id: str, reason: Optional[str]):
        """Cancel a one-time booking through its single session"""
        booking = self.get_booking(booking_id, owner_id)
        if booking.is_recurring:
            raise NotCancellableError(
                "Recurring bookings cannot be cancelled as a whole. Cancel individual sessions instead."
            )
        if not booking.sessions:
            raise NotFoundError("Booking has no session")

        cancellation = CancellationService(self.db, self.gateway)
        return await cancellation.cancel_session(
            booking.sessions[0].id, reason, actor=ACTOR_OWNER, owner_id=owner_id
        )
