"""Booking router - FastAPI endpoints for bookings and payment orders"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user_id
from ...config import CURRENCY
from ...database import get_db
from ...models import Booking
from ...services.notification_service import notify_session_cancelled, notify_sessions_created
from ...services.payment_gateway import RazorpayGateway, get_payment_gateway
from ...shared.validators import to_minor_units
from ..sessions.schemas import CancelRequest, CancelResponse, SessionResponse
from .schemas import (
    BookingCreate,
    BookingResponse,
    EstimateRequest,
    EstimateResponse,
    PaymentOrderCreate,
    PaymentOrderResponse,
    PaymentResponse,
    PaymentVerifyRequest,
    SessionCodes,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])
payments_router = APIRouter(prefix="/payments", tags=["Payments"])


def get_booking_service(
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, gateway)


def _booking_response(booking: Booking, codes: dict[str, dict[str, str]]) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        owner_id=booking.owner_id,
        pet_id=booking.pet_id,
        service_id=booking.service_id,
        start_date=booking.start_date,
        end_date=booking.end_date,
        time=booking.time,
        is_recurring=booking.is_recurring,
        recurring_pattern=booking.recurring_pattern,
        expected_total=booking.expected_total,
        payment_option=booking.payment_option,
        payment_status=booking.payment_status,
        created_at=booking.created_at,
        sessions=[
            SessionCodes(
                session_id=s.id,
                sequence_number=s.sequence_number,
                session_date=s.session_date,
                session_time=s.session_time,
                unit_price=s.unit_price,
                status=s.status,
                payment_status=s.payment_status,
                start_code=codes.get(s.id, {}).get("START", ""),
                end_code=codes.get(s.id, {}).get("END", ""),
            )
            for s in booking.sessions
        ],
    )


# ============================================================================
# BOOKINGS
# ============================================================================


@router.post("/estimate", response_model=EstimateResponse)
async def estimate_booking(
    data: EstimateRequest,
    service: BookingService = Depends(get_booking_service),
):
    """Session dates and total the booking would be charged"""
    return EstimateResponse(**service.estimate(data))


@router.post("", response_model=BookingResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    background_tasks: BackgroundTasks,
    owner_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Create a one-time or recurring booking with all of its sessions"""
    booking = service.create_booking(owner_id, data)
    background_tasks.add_task(
        notify_sessions_created, booking.owner_id, booking.id, len(booking.sessions)
    )
    return _booking_response(booking, service.get_codes(booking))


@router.get("", response_model=list[BookingResponse])
async def get_bookings(
    limit: int = Query(50, ge=1, le=200),
    owner_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    return [
        _booking_response(b, service.get_codes(b)) for b in service.get_bookings(owner_id, limit)
    ]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    owner_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.get_booking(booking_id, owner_id)
    return _booking_response(booking, service.get_codes(booking))


@router.post("/{booking_id}/cancel", response_model=CancelResponse)
async def cancel_booking(
    booking_id: str,
    data: CancelRequest,
    background_tasks: BackgroundTasks,
    owner_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Cancel a one-time booking; recurring bookings are cancelled session by session"""
    session, refund = await service.cancel_booking(booking_id, owner_id, data.reason)
    background_tasks.add_task(
        notify_session_cancelled,
        session.owner_id,
        session.sitter_id,
        session.id,
        refund.refund_amount if refund else None,
    )
    if refund is None:
        message = "Booking cancelled successfully"
    elif refund.requires_manual_processing:
        message = "Booking cancelled. Your refund will be processed manually."
    else:
        message = f"Booking cancelled. Refund of {refund.refund_amount:.2f} initiated."
    return CancelResponse(
        message=message,
        session=SessionResponse.model_validate(session),
        refund=refund,
    )


# ============================================================================
# PAYMENTS
# ============================================================================


@payments_router.post("/orders", response_model=PaymentOrderResponse, status_code=201)
async def create_payment_order(
    data: PaymentOrderCreate,
    owner_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
):
    """Open a gateway order for the server-side total after checking the displayed one"""
    payment = await service.create_payment_order(owner_id, data)
    return PaymentOrderResponse(
        payment_id=payment.id,
        gateway_order_id=payment.gateway_order_id,
        amount=payment.amount,
        amount_minor_units=to_minor_units(payment.amount),
        currency=payment.currency or CURRENCY,
        key_id=gateway.key_id,
    )


@payments_router.post("/{payment_id}/verify", response_model=PaymentResponse)
async def verify_payment(
    payment_id: str,
    data: PaymentVerifyRequest,
    owner_id: str = Depends(get_current_user_id),
    service: BookingService = Depends(get_booking_service),
):
    """Confirm checkout completed; the payment can then back a pay-now booking"""
    payment = service.verify_payment(
        owner_id, payment_id, data.gateway_order_id, data.gateway_payment_id, data.signature
    )
    return PaymentResponse.model_validate(payment)
