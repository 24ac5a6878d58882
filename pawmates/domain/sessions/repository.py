"""Session repository - Database operations for sessions, codes and refunds"""

from datetime import date, datetime
from typing import Iterable, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ...models import (
    BookingSession,
    ConfigSetting,
    GatewayPaymentStatus,
    Payment,
    PaymentRefund,
    RefundStatus,
    ServiceCode,
    SessionStatus,
)


class SessionRepository:
    """Repository for session database operations

    State changes are compare-and-set UPDATEs that report whether they won;
    nothing here commits.
    """

    @staticmethod
    def get_session(db: Session, session_id: str) -> Optional[BookingSession]:
        return db.query(BookingSession).filter(BookingSession.id == session_id).first()

    @staticmethod
    def get_session_for_owner(
        db: Session, session_id: str, owner_id: str
    ) -> Optional[BookingSession]:
        return (
            db.query(BookingSession)
            .filter(BookingSession.id == session_id, BookingSession.owner_id == owner_id)
            .first()
        )

    @staticmethod
    def transition(
        db: Session, session_id: str, from_statuses: Iterable[str], **values
    ) -> bool:
        """Apply values only if the session is still in one of from_statuses"""
        updated = (
            db.query(BookingSession)
            .filter(
                BookingSession.id == session_id,
                BookingSession.status.in_(list(from_statuses)),
            )
            .update(values, synchronize_session=False)
        )
        return updated == 1

    @staticmethod
    def find_valid_code(
        db: Session, session_id: str, code_type: str, code: str, now: datetime
    ) -> Optional[ServiceCode]:
        """Unused, unexpired code of the given type matching the submitted value"""
        return (
            db.query(ServiceCode)
            .filter(
                ServiceCode.session_id == session_id,
                ServiceCode.code_type == code_type,
                ServiceCode.code == code,
                ServiceCode.is_used.is_(False),
                or_(ServiceCode.expires_at.is_(None), ServiceCode.expires_at > now),
            )
            .first()
        )

    @staticmethod
    def consume_code(db: Session, code_id: str, now: datetime) -> bool:
        """used=false -> used=true; the loser of a race gets False"""
        updated = (
            db.query(ServiceCode)
            .filter(ServiceCode.id == code_id, ServiceCode.is_used.is_(False))
            .update({"is_used": True, "used_at": now}, synchronize_session=False)
        )
        return updated == 1

    # Listing Methods
    @staticmethod
    def get_upcoming_for_owner(
        db: Session, owner_id: str, today: date, limit: int = 20
    ) -> list[BookingSession]:
        return (
            db.query(BookingSession)
            .filter(
                BookingSession.owner_id == owner_id,
                BookingSession.status.in_(list(SessionStatus.CANCELLABLE)),
                BookingSession.session_date >= today,
            )
            .order_by(BookingSession.session_date.asc(), BookingSession.session_time.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_ongoing_for_owner(db: Session, owner_id: str) -> list[BookingSession]:
        return (
            db.query(BookingSession)
            .filter(
                BookingSession.owner_id == owner_id,
                BookingSession.status == SessionStatus.ONGOING,
            )
            .order_by(BookingSession.service_started_at.asc())
            .all()
        )

    @staticmethod
    def get_sessions_for_sitter(
        db: Session, sitter_id: str, status: Optional[str] = None
    ) -> list[BookingSession]:
        query = db.query(BookingSession).filter(BookingSession.sitter_id == sitter_id)
        if status:
            query = query.filter(BookingSession.status == status)
        return query.order_by(
            BookingSession.session_date.asc(), BookingSession.session_time.asc()
        ).all()

    # Settings & Payments
    @staticmethod
    def get_setting(db: Session, key: str) -> Optional[str]:
        setting = db.query(ConfigSetting).filter(ConfigSetting.key == key).first()
        return setting.value if setting else None

    @staticmethod
    def find_captured_payment(db: Session, session: BookingSession) -> Optional[Payment]:
        """Payment for this session, falling back to the one covering its booking"""
        return (
            db.query(Payment)
            .filter(
                Payment.status == GatewayPaymentStatus.CAPTURED,
                or_(
                    Payment.session_id == session.id,
                    and_(Payment.session_id.is_(None), Payment.booking_id == session.booking_id),
                ),
            )
            .order_by(Payment.session_id.is_(None), Payment.created_at.desc())
            .first()
        )

    @staticmethod
    def add_refund(db: Session, **refund_data) -> PaymentRefund:
        refund = PaymentRefund(**refund_data)
        db.add(refund)
        db.flush()
        return refund

    @staticmethod
    def get_refunds_to_retry(
        db: Session, max_attempts: int, stale_before: datetime, limit: int = 50
    ) -> list[PaymentRefund]:
        """Failed intents, plus INITIATED ones whose gateway call never reported back"""
        return (
            db.query(PaymentRefund)
            .filter(
                or_(
                    PaymentRefund.status == RefundStatus.FAILED_PENDING_MANUAL,
                    and_(
                        PaymentRefund.status == RefundStatus.INITIATED,
                        PaymentRefund.gateway_refund_id.is_(None),
                        PaymentRefund.updated_at < stale_before,
                    ),
                ),
                PaymentRefund.attempts < max_attempts,
            )
            .order_by(PaymentRefund.initiated_at.asc())
            .limit(limit)
            .all()
        )
