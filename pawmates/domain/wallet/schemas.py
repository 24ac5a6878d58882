"""Wallet domain schemas - Pydantic models for responses"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class WalletTransactionResponse(BaseModel):
    id: str
    session_id: Optional[str] = None
    amount: float
    transaction_type: str
    status: str
    description: Optional[str] = None
    available_at: Optional[datetime] = None
    metadata: Optional[dict] = None
    created_at: Optional[datetime] = None


class WalletResponse(BaseModel):
    """Schema for a sitter's wallet"""

    sitter_id: str
    balance: float
    pending_amount: float
    total_earnings: float
    transactions: list[WalletTransactionResponse]
