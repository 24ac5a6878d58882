"""
Session lifecycle

PENDING → ASSIGNED → CONFIRMED → ONGOING → COMPLETED

Starting and ending a session each consume a single-use code. Code
consumption is the mutual-exclusion point: two requests presenting the
same code race on the used=false → used=true update and only one wins.
"""

import logging
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import BookingSession, CodeType, SessionStatus, WalletTransaction
from ...shared.exceptions import InvalidOrExpiredCodeError, InvalidTransitionError, NotFoundError
from ..wallet.service import WalletService
from .repository import SessionRepository

logger = logging.getLogger(__name__)


class SessionService:
    """Service layer for session state transitions"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SessionRepository()
        self.wallet = WalletService(db)

    def get_session(self, session_id: str) -> BookingSession:
        session = self.repo.get_session(self.db, session_id)
        if not session:
            raise NotFoundError("Session not found")
        return session

    def get_session_for_owner(self, session_id: str, owner_id: str) -> BookingSession:
        session = self.repo.get_session_for_owner(self.db, session_id, owner_id)
        if not session:
            raise NotFoundError("Session not found")
        return session

    def _get_session_for_sitter(self, session_id: str, sitter_id: Optional[str]) -> BookingSession:
        session = self.get_session(session_id)
        if sitter_id is not None and session.sitter_id != sitter_id:
            # Don't reveal sessions assigned to someone else
            raise NotFoundError("Session not found")
        return session

    def _apply(self, session: BookingSession, from_statuses, **values) -> BookingSession:
        try:
            if not self.repo.transition(self.db, session.id, from_statuses, **values):
                raise InvalidTransitionError(
                    f"Session cannot move to {values.get('status')} from {session.status}"
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(session)
        return session

    # ------------------------------------------------------------------
    # Assignment (the choice of sitter is made elsewhere)
    # ------------------------------------------------------------------
    def assign(self, session_id: str, sitter_id: str) -> BookingSession:
        session = self.get_session(session_id)
        session = self._apply(
            session,
            {SessionStatus.PENDING},
            status=SessionStatus.ASSIGNED,
            sitter_id=sitter_id,
        )
        logger.info(f"✅ Session {session.id} transitioned: PENDING → ASSIGNED (sitter {sitter_id})")
        return session

    def confirm(self, session_id: str) -> BookingSession:
        session = self.get_session(session_id)
        session = self._apply(session, {SessionStatus.ASSIGNED}, status=SessionStatus.CONFIRMED)
        logger.info(f"✅ Session {session.id} transitioned: ASSIGNED → CONFIRMED")
        return session

    # ------------------------------------------------------------------
    # Service window
    # ------------------------------------------------------------------
    def start(
        self,
        session_id: str,
        code: str,
        sitter_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> BookingSession:
        """
        Redeem the START code and move the session to ONGOING.

        Raises:
            InvalidOrExpiredCodeError: wrong state, wrong/used/expired code,
                or another request won the race; nothing is changed
        """
        now = now or datetime.utcnow()
        session = self._get_session_for_sitter(session_id, sitter_id)

        if session.status not in SessionStatus.STARTABLE or not session.sitter_id:
            logger.warning(f"⚠️ Start rejected for session {session.id} in status {session.status}")
            raise InvalidOrExpiredCodeError()

        service_code = self.repo.find_valid_code(self.db, session.id, CodeType.START, code, now)
        if not service_code:
            logger.warning(f"⚠️ Invalid or expired START code for session {session.id}")
            raise InvalidOrExpiredCodeError()

        try:
            if not self.repo.consume_code(self.db, service_code.id, now):
                raise InvalidOrExpiredCodeError()
            if not self.repo.transition(
                self.db,
                session.id,
                SessionStatus.STARTABLE,
                status=SessionStatus.ONGOING,
                service_started_at=now,
            ):
                raise InvalidOrExpiredCodeError()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(session)
        logger.info(f"🔐 Service started for session {session.id}")
        return session

    def end(
        self,
        session_id: str,
        code: str,
        sitter_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> tuple[BookingSession, WalletTransaction]:
        """
        Redeem the END code, complete the session and credit the sitter.

        Code consumption, the COMPLETED status and the ledger entry commit
        together or not at all.
        """
        now = now or datetime.utcnow()
        session = self._get_session_for_sitter(session_id, sitter_id)

        if session.status != SessionStatus.ONGOING:
            logger.warning(f"⚠️ End rejected for session {session.id} in status {session.status}")
            raise InvalidOrExpiredCodeError()

        service_code = self.repo.find_valid_code(self.db, session.id, CodeType.END, code, now)
        if not service_code:
            logger.warning(f"⚠️ Invalid or expired END code for session {session.id}")
            raise InvalidOrExpiredCodeError()

        values = {"status": SessionStatus.COMPLETED}
        if session.booking.is_recurring:
            values["service_ended_at"] = now
            if session.service_started_at:
                elapsed = now - session.service_started_at
                values["actual_duration"] = round(elapsed.total_seconds() / 60)
        else:
            values["completed_at"] = now

        try:
            if not self.repo.consume_code(self.db, service_code.id, now):
                raise InvalidOrExpiredCodeError()
            if not self.repo.transition(self.db, session.id, {SessionStatus.ONGOING}, **values):
                raise InvalidOrExpiredCodeError()
            earning = self.wallet.accrue_earnings(session.sitter_id, session, session.unit_price, now)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(session)
        logger.info(f"✅ Session {session.id} transitioned: ONGOING → COMPLETED")
        return session, earning

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_upcoming(self, owner_id: str, today: Optional[date] = None) -> list[BookingSession]:
        return self.repo.get_upcoming_for_owner(self.db, owner_id, today or date.today())

    def get_ongoing(self, owner_id: str) -> list[BookingSession]:
        return self.repo.get_ongoing_for_owner(self.db, owner_id)

    def get_sitter_sessions(self, sitter_id: str, status: Optional[str] = None) -> list[BookingSession]:
        return self.repo.get_sessions_for_sitter(self.db, sitter_id, status)
