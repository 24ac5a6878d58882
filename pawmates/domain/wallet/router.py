"""Wallet router - FastAPI endpoints for sitter earnings"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_sitter_id
from ...database import get_db
from .schemas import WalletResponse, WalletTransactionResponse
from .service import WalletService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wallet", tags=["Wallet"])


def get_wallet_service(db: Session = Depends(get_db)) -> WalletService:
    """Dependency injection for WalletService"""
    return WalletService(db)


@router.get("/me", response_model=WalletResponse)
async def get_my_wallet(
    limit: int = Query(50, ge=1, le=200),
    sitter_id: str = Depends(get_current_sitter_id),
    service: WalletService = Depends(get_wallet_service),
):
    """Balances and recent ledger entries for the calling sitter"""
    wallet, transactions = service.get_wallet(sitter_id, limit)
    return WalletResponse(
        sitter_id=wallet.sitter_id,
        balance=wallet.balance,
        pending_amount=wallet.pending_amount,
        total_earnings=wallet.total_earnings,
        transactions=[
            WalletTransactionResponse(
                id=t.id,
                session_id=t.session_id,
                amount=t.amount,
                transaction_type=t.transaction_type,
                status=t.status,
                description=t.description,
                available_at=t.available_at,
                metadata=t.meta,
                created_at=t.created_at,
            )
            for t in transactions
        ],
    )
