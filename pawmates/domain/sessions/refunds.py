"""
Cancellation & Refund Calculator

The cancellation itself is local and authoritative: it commits before the
gateway is contacted. The refund is best effort; a failed gateway call
leaves a FAILED_PENDING_MANUAL intent for the reconciliation worker or
for staff to pick up. An INITIATED intent that never got a gateway id
(the call was interrupted) is picked up by the worker once it goes stale.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...config import (
    CANCELLATION_DEDUCTION_CONFIG_KEY,
    DEFAULT_CANCELLATION_DEDUCTION_PERCENT,
    MANUAL_REFUND_PROCESSING_TIME,
    REFUND_PROCESSING_TIME,
    REFUND_RETRY_MAX_ATTEMPTS,
    REFUND_STALE_AFTER_MINUTES,
)
from ...models import (
    BookingSession,
    PaymentRefund,
    PaymentStatus,
    RefundStatus,
    SessionStatus,
)
from ...services.payment_gateway import RazorpayGateway
from ...shared.exceptions import NotCancellableError, NotFoundError, RefundGatewayError
from ...shared.validators import to_minor_units
from .repository import SessionRepository
from .schemas import RefundInfo

logger = logging.getLogger(__name__)

ACTOR_OWNER = "owner"
ACTOR_ADMIN = "admin"


def calculate_refund(unit_price: float, deduction_percent: float) -> tuple[float, float]:
    """Returns (deduction_amount, refund_amount) for a cancelled session"""
    deduction = round(unit_price * deduction_percent / 100, 2)
    refund = round(unit_price - deduction, 2)
    return deduction, refund


class CancellationService:
    """Cancels individual sessions and drives their refunds"""

    def __init__(self, db: Session, gateway: RazorpayGateway):
        self.db = db
        self.gateway = gateway
        self.repo = SessionRepository()

    def get_deduction_percent(self) -> float:
        """Self-cancellation deduction, read fresh from config_settings on every call"""
        raw = self.repo.get_setting(self.db, CANCELLATION_DEDUCTION_CONFIG_KEY)
        if raw is None:
            return DEFAULT_CANCELLATION_DEDUCTION_PERCENT
        try:
            percent = float(raw)
        except ValueError:
            logger.warning(
                f"⚠️ Invalid {CANCELLATION_DEDUCTION_CONFIG_KEY} value '{raw}', "
                f"using {DEFAULT_CANCELLATION_DEDUCTION_PERCENT}%"
            )
            return DEFAULT_CANCELLATION_DEDUCTION_PERCENT
        return min(max(percent, 0.0), 100.0)

    async def cancel_session(
        self,
        session_id: str,
        reason: Optional[str],
        actor: str = ACTOR_OWNER,
        owner_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> tuple[BookingSession, Optional[RefundInfo]]:
        """
        Cancel one session and refund it if it was paid.

        Owners land in USERCANCELLED and pay the configured deduction;
        admin cancellations land in CANCELLED and refund in full.

        Returns:
            (session, refund info or None when nothing was paid)

        Raises:
            NotFoundError: session missing or not owned by owner_id
            NotCancellableError: session already started or finished
        """
        now = now or datetime.utcnow()
        if owner_id is not None:
            session = self.repo.get_session_for_owner(self.db, session_id, owner_id)
        else:
            session = self.repo.get_session(self.db, session_id)
        if not session:
            raise NotFoundError("Session not found")

        if session.status not in SessionStatus.CANCELLABLE:
            logger.warning(f"⚠️ Cancel rejected for session {session.id} in status {session.status}")
            raise NotCancellableError(f"Session cannot be cancelled in status {session.status}")

        target_status = SessionStatus.CANCELLED if actor == ACTOR_ADMIN else SessionStatus.USERCANCELLED
        paid = session.payment_status == PaymentStatus.PAID
        refund = None

        try:
            # A concurrent start that won the race leaves the row ONGOING and this update misses
            if not self.repo.transition(
                self.db,
                session.id,
                SessionStatus.CANCELLABLE,
                status=target_status,
                cancellation_reason=reason,
                cancelled_by=actor,
                cancelled_at=now,
            ):
                raise NotCancellableError("Session is no longer cancellable")

            if paid:
                refund = self._record_intent(session, actor)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(session)
        logger.info(f"✅ Session {session.id} cancelled by {actor} → {target_status}")

        if refund is None:
            return session, None

        if refund.status == RefundStatus.INITIATED:
            await self._submit_refund(refund, session, reason)

        return session, self._refund_info(refund)

    def _record_intent(self, session: BookingSession, actor: str) -> PaymentRefund:
        """Refund intent, written in the same transaction as the cancellation"""
        percent = 0.0 if actor == ACTOR_ADMIN else self.get_deduction_percent()
        deduction, refund_amount = calculate_refund(session.unit_price, percent)
        payment = self.repo.find_captured_payment(self.db, session)

        intent = {
            "session_id": session.id,
            "payment_id": payment.id if payment else None,
            "requested_amount": session.unit_price,
            "deduction_percent": percent,
            "deduction_amount": deduction,
            "refund_amount": refund_amount,
            "status": RefundStatus.INITIATED,
        }
        if not payment or not payment.gateway_payment_id:
            logger.error(f"❌ No captured payment found for paid session {session.id}")
            intent["status"] = RefundStatus.FAILED_PENDING_MANUAL
            intent["failure_reason"] = "Payment record not found"

        return self.repo.add_refund(self.db, **intent)

    async def _submit_refund(
        self, refund: PaymentRefund, session: BookingSession, reason: Optional[str] = None
    ) -> bool:
        """One gateway attempt; the attempt and its outcome are committed separately"""
        refund.attempts = (refund.attempts or 0) + 1
        self.db.commit()

        notes = {
            "session_id": session.id,
            "sequence_number": str(session.sequence_number),
            "reason": reason or session.cancellation_reason or "Cancelled",
            "cancellation_fee": f"{refund.deduction_amount:.2f}",
        }

        try:
            response = await self.gateway.create_refund(
                refund.payment.gateway_payment_id,
                to_minor_units(refund.refund_amount),
                notes,
            )
        except RefundGatewayError as e:
            refund.status = RefundStatus.FAILED_PENDING_MANUAL
            refund.failure_reason = e.detail
            self.db.commit()
            logger.error(
                f"❌ Refund for session {session.id} needs manual processing "
                f"(attempt {refund.attempts}): {e.detail}"
            )
            return False

        refund.status = RefundStatus.INITIATED
        refund.gateway_refund_id = response["id"]
        refund.gateway_response = response
        refund.failure_reason = None
        session.payment_status = PaymentStatus.REFUNDED
        self.db.commit()
        logger.info(f"💸 Refund {response['id']} of {refund.refund_amount:.2f} initiated for session {session.id}")
        return True

    @staticmethod
    def _refund_info(refund: PaymentRefund) -> RefundInfo:
        manual = refund.status == RefundStatus.FAILED_PENDING_MANUAL
        return RefundInfo(
            refund_amount=refund.refund_amount,
            deduction_amount=refund.deduction_amount,
            deduction_percent=refund.deduction_percent,
            processing_time=MANUAL_REFUND_PROCESSING_TIME if manual else REFUND_PROCESSING_TIME,
            refund_id=refund.gateway_refund_id,
            requires_manual_processing=manual,
            error=refund.failure_reason if manual else None,
        )

    async def retry_failed_refunds(
        self,
        max_attempts: int = REFUND_RETRY_MAX_ATTEMPTS,
        limit: int = 50,
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Retry intents that still have attempts left: FAILED_PENDING_MANUAL
        ones, and INITIATED ones left without a gateway id for longer than
        REFUND_STALE_AFTER_MINUTES.
        """
        now = now or datetime.utcnow()
        stale_before = now - timedelta(minutes=REFUND_STALE_AFTER_MINUTES)
        results = {"retried": 0, "succeeded": 0, "failed": 0, "skipped": 0}

        for refund in self.repo.get_refunds_to_retry(self.db, max_attempts, stale_before, limit):
            if not refund.payment or not refund.payment.gateway_payment_id:
                # Nothing to send to the gateway; leave it for staff
                refund.attempts = max_attempts
                self.db.commit()
                results["skipped"] += 1
                continue

            results["retried"] += 1
            if await self._submit_refund(refund, refund.session):
                results["succeeded"] += 1
            else:
                results["failed"] += 1

        if results["retried"] or results["skipped"]:
            logger.info(f"🔁 Refund reconciliation: {results}")
        return results
