"""Wallet service - Earnings ledger for sitters"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...config import EARNINGS_HOLD_DAYS
from ...models import (
    BookingSession,
    LedgerEntryStatus,
    LedgerEntryType,
    SitterWallet,
    WalletTransaction,
)
from .repository import WalletRepository

logger = logging.getLogger(__name__)


class WalletService:
    """Service layer for sitter earnings"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = WalletRepository()

    def accrue_earnings(
        self,
        sitter_id: str,
        session: BookingSession,
        amount: float,
        now: Optional[datetime] = None,
    ) -> WalletTransaction:
        """
        Credit a completed session to the sitter's wallet.

        Runs inside the caller's transaction and does not commit, so the
        ledger entry lands together with the COMPLETED status or not at all.
        Not idempotent: the caller guarantees one accrual per session.
        """
        now = now or datetime.utcnow()
        wallet = self.repo.get_or_create_wallet(self.db, sitter_id)

        self.repo.credit_pending(self.db, wallet.id, amount)
        transaction = self.repo.add_transaction(
            self.db,
            wallet_id=wallet.id,
            session_id=session.id,
            amount=amount,
            transaction_type=LedgerEntryType.EARNING,
            status=LedgerEntryStatus.PENDING,
            description="Service completion earnings",
            available_at=now + timedelta(days=EARNINGS_HOLD_DAYS),
            meta={
                "booking_id": session.booking_id,
                "sequence_number": session.sequence_number,
                "service_date": session.session_date.isoformat(),
                "service_time": session.session_time,
                "total_price": session.unit_price,
                "commission_rate": 1,
            },
        )

        logger.info(
            f"💰 Accrued {amount:.2f} for sitter {sitter_id} (session {session.id}), "
            f"available at {transaction.available_at.isoformat()}"
        )
        return transaction

    def get_wallet(self, sitter_id: str, limit: int = 50) -> tuple[SitterWallet, list[WalletTransaction]]:
        """Wallet with its most recent ledger entries, creating an empty wallet if needed"""
        wallet = self.repo.get_or_create_wallet(self.db, sitter_id)
        self.db.commit()
        self.db.refresh(wallet)
        return wallet, self.repo.get_transactions(self.db, wallet.id, limit)
