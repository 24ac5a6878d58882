"""Session domain schemas - Pydantic models for request/response validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CodeSubmission(BaseModel):
    """Schema for redeeming a START or END code"""

    code: str = Field(..., min_length=6, max_length=6)

    @field_validator("code")
    @classmethod
    def validate_code(cls, v):
        v = v.strip()
        if not v.isdigit():
            raise ValueError("Code must be 6 digits")
        return v


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class AssignRequest(BaseModel):
    sitter_id: str = Field(..., min_length=1, max_length=36)


class RefundInfo(BaseModel):
    """What the owner is told about the money after a paid cancellation"""

    refund_amount: float
    deduction_amount: float
    deduction_percent: float
    processing_time: str
    refund_id: Optional[str] = None
    requires_manual_processing: bool = False
    error: Optional[str] = None


class SessionResponse(BaseModel):
    """Schema for session response"""

    id: str
    booking_id: str
    owner_id: str
    sitter_id: Optional[str] = None
    sequence_number: int
    session_date: date
    session_time: str
    duration_minutes: int
    unit_price: float
    status: str
    payment_status: str
    service_started_at: Optional[datetime] = None
    service_ended_at: Optional[datetime] = None
    actual_duration: Optional[int] = None
    completed_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SessionEndResponse(BaseModel):
    session: SessionResponse
    earnings: float
    available_at: datetime


class CancelResponse(BaseModel):
    message: str
    session: SessionResponse
    refund: Optional[RefundInfo] = None
