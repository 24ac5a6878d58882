"""Booking repository - Database operations for bookings, sessions and payments"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, BookingSession, Payment, Service, ServiceCode


class BookingRepository:
    """Repository for booking database operations; callers commit"""

    @staticmethod
    def get_active_service(db: Session, service_id: str) -> Optional[Service]:
        return (
            db.query(Service)
            .filter(Service.id == service_id, Service.is_active.is_(True))
            .first()
        )

    @staticmethod
    def get_booking_for_owner(db: Session, booking_id: str, owner_id: str) -> Optional[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.id == booking_id, Booking.owner_id == owner_id)
            .first()
        )

    @staticmethod
    def get_bookings_for_owner(db: Session, owner_id: str, limit: int = 50) -> list[Booking]:
        return (
            db.query(Booking)
            .filter(Booking.owner_id == owner_id)
            .order_by(Booking.created_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_payment_for_owner(db: Session, payment_id: str, owner_id: str) -> Optional[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.id == payment_id, Payment.owner_id == owner_id)
            .first()
        )

    @staticmethod
    def add_payment(db: Session, **payment_data) -> Payment:
        payment = Payment(**payment_data)
        db.add(payment)
        db.flush()
        return payment

    @staticmethod
    def link_payment(
        db: Session, payment_id: str, booking_id: str, session_id: Optional[str] = None
    ) -> bool:
        """Attach a payment to a booking unless another booking already claimed it"""
        updated = (
            db.query(Payment)
            .filter(Payment.id == payment_id, Payment.booking_id.is_(None))
            .update(
                {"booking_id": booking_id, "session_id": session_id},
                synchronize_session=False,
            )
        )
        return updated == 1

    @staticmethod
    def add_booking(db: Session, **booking_data) -> Booking:
        booking = Booking(**booking_data)
        db.add(booking)
        db.flush()
        return booking

    @staticmethod
    def add_session(db: Session, **session_data) -> BookingSession:
        session = BookingSession(**session_data)
        db.add(session)
        db.flush()
        return session

    @staticmethod
    def add_code(db: Session, **code_data) -> ServiceCode:
        code = ServiceCode(**code_data)
        db.add(code)
        return code

    @staticmethod
    def get_codes_by_session(db: Session, session_ids: list[str]) -> dict[str, dict[str, str]]:
        """{session_id: {"START": code, "END": code}}"""
        codes: dict[str, dict[str, str]] = {}
        if not session_ids:
            return codes
        rows = db.query(ServiceCode).filter(ServiceCode.session_id.in_(session_ids)).all()
        for row in rows:
            codes.setdefault(row.session_id, {})[row.code_type] = row.code
        return codes
