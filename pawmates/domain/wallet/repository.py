"""Wallet repository - Database operations for sitter wallets and ledger entries"""

from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import SitterWallet, WalletTransaction


class WalletRepository:
    """Repository for wallet database operations

    Nothing here commits; callers own the unit of work.
    """

    @staticmethod
    def get_wallet_by_sitter(db: Session, sitter_id: str) -> Optional[SitterWallet]:
        return db.query(SitterWallet).filter(SitterWallet.sitter_id == sitter_id).first()

    @staticmethod
    def get_or_create_wallet(db: Session, sitter_id: str) -> SitterWallet:
        """Lookup-or-create with zero balances; safe against a concurrent create"""
        wallet = WalletRepository.get_wallet_by_sitter(db, sitter_id)
        if wallet:
            return wallet

        try:
            with db.begin_nested():
                wallet = SitterWallet(
                    sitter_id=sitter_id, balance=0.0, pending_amount=0.0, total_earnings=0.0
                )
                db.add(wallet)
        except IntegrityError:
            # Another request created it first
            wallet = WalletRepository.get_wallet_by_sitter(db, sitter_id)
        return wallet

    @staticmethod
    def credit_pending(db: Session, wallet_id: str, amount: float) -> None:
        """Increment pending and lifetime earnings in the database, not in Python"""
        db.query(SitterWallet).filter(SitterWallet.id == wallet_id).update(
            {
                SitterWallet.pending_amount: SitterWallet.pending_amount + amount,
                SitterWallet.total_earnings: SitterWallet.total_earnings + amount,
            },
            synchronize_session=False,
        )

    @staticmethod
    def add_transaction(db: Session, **transaction_data) -> WalletTransaction:
        transaction = WalletTransaction(**transaction_data)
        db.add(transaction)
        db.flush()
        return transaction

    @staticmethod
    def get_transactions(db: Session, wallet_id: str, limit: int = 50) -> list[WalletTransaction]:
        return (
            db.query(WalletTransaction)
            .filter(WalletTransaction.wallet_id == wallet_id)
            .order_by(WalletTransaction.created_at.desc())
            .limit(limit)
            .all()
        )
