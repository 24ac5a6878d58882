"""Booking domain schemas - Pydantic models for request/response validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import validate_time_of_day

PAY_NOW = "pay-now"
PAY_LATER = "pay-later"


class ScheduleFields(BaseModel):
    """What the price depends on; shared by estimate, order and booking requests"""

    service_id: str = Field(..., min_length=1, max_length=36)
    start_date: date
    end_date: Optional[date] = None
    is_recurring: bool = False
    recurring_pattern: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def check_recurring_fields(self):
        if self.is_recurring:
            if not self.recurring_pattern:
                raise ValueError("recurring_pattern is required for recurring bookings")
            if not self.end_date:
                raise ValueError("end_date is required for recurring bookings")
        return self


class EstimateRequest(ScheduleFields):
    pass


class EstimateResponse(BaseModel):
    service_id: str
    unit_price: float
    session_count: int
    session_dates: list[date]
    expected_total: float
    recurring_pattern: Optional[str] = None
    description: Optional[str] = None


class PaymentOrderCreate(ScheduleFields):
    """Schema for creating a gateway order; total_price is what the client displayed"""

    total_price: float = Field(..., ge=0)


class PaymentOrderResponse(BaseModel):
    payment_id: str
    gateway_order_id: str
    amount: float
    amount_minor_units: int
    currency: str
    key_id: Optional[str] = None


class PaymentVerifyRequest(BaseModel):
    gateway_order_id: str
    gateway_payment_id: str
    signature: str


class PaymentResponse(BaseModel):
    id: str
    service_id: str
    booking_id: Optional[str] = None
    amount: float
    currency: str
    gateway_order_id: Optional[str] = None
    gateway_payment_id: Optional[str] = None
    status: str

    class Config:
        from_attributes = True


class BookingCreate(ScheduleFields):
    """Schema for creating a booking"""

    pet_id: str = Field(..., min_length=1, max_length=36)
    address_id: Optional[str] = Field(None, max_length=36)
    time: str
    duration_minutes: Optional[int] = Field(None, ge=15, le=24 * 60)
    total_price: float = Field(..., ge=0)
    payment_option: str = PAY_LATER
    payment_id: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("time")
    @classmethod
    def validate_time(cls, v):
        return validate_time_of_day(v)

    @field_validator("payment_option")
    @classmethod
    def validate_payment_option(cls, v):
        v = v.strip().lower()
        if v not in (PAY_NOW, PAY_LATER):
            raise ValueError(f"payment_option must be '{PAY_NOW}' or '{PAY_LATER}'")
        return v

    @model_validator(mode="after")
    def check_payment_reference(self):
        if self.payment_option == PAY_NOW and not self.payment_id:
            raise ValueError("payment_id is required when paying now")
        return self


class SessionCodes(BaseModel):
    """A session with the codes the owner hands to the sitter"""

    session_id: str
    sequence_number: int
    session_date: date
    session_time: str
    unit_price: float
    status: str
    payment_status: str
    start_code: str
    end_code: str


class BookingResponse(BaseModel):
    """Schema for booking response"""

    id: str
    owner_id: str
    pet_id: str
    service_id: str
    start_date: date
    end_date: Optional[date] = None
    time: str
    is_recurring: bool
    recurring_pattern: Optional[str] = None
    expected_total: float
    payment_option: str
    payment_status: str
    created_at: Optional[datetime] = None
    sessions: list[SessionCodes] = []
