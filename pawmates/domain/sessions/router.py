"""Session router - FastAPI endpoints for the session lifecycle"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_sitter_id, get_current_user_id, require_admin
from ...database import get_db
from ...services.notification_service import (
    notify_service_completed,
    notify_service_started,
    notify_session_cancelled,
)
from ...services.payment_gateway import RazorpayGateway, get_payment_gateway
from .refunds import ACTOR_ADMIN, ACTOR_OWNER, CancellationService
from .schemas import (
    AssignRequest,
    CancelRequest,
    CancelResponse,
    CodeSubmission,
    SessionEndResponse,
    SessionResponse,
)
from .service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["Sessions"])


def get_session_service(db: Session = Depends(get_db)) -> SessionService:
    """Dependency injection for SessionService"""
    return SessionService(db)


def get_cancellation_service(
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
) -> CancellationService:
    """Dependency injection for CancellationService"""
    return CancellationService(db, gateway)


def _cancel_message(refund) -> str:
    if refund is None:
        return "Session cancelled successfully"
    if refund.requires_manual_processing:
        return "Session cancelled. Your refund will be processed manually."
    return f"Session cancelled. Refund of {refund.refund_amount:.2f} initiated."


# ============================================================================
# OWNER VIEWS
# ============================================================================


@router.get("/upcoming", response_model=list[SessionResponse])
async def get_upcoming_sessions(
    owner_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service),
):
    """Cancellable sessions from today onwards, soonest first"""
    return [SessionResponse.model_validate(s) for s in service.get_upcoming(owner_id)]


@router.get("/ongoing", response_model=list[SessionResponse])
async def get_ongoing_sessions(
    owner_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service),
):
    return [SessionResponse.model_validate(s) for s in service.get_ongoing(owner_id)]


@router.get("/assigned", response_model=list[SessionResponse])
async def get_assigned_sessions(
    status: Optional[str] = Query(None),
    sitter_id: str = Depends(get_current_sitter_id),
    service: SessionService = Depends(get_session_service),
):
    """Sessions assigned to the calling sitter, optionally filtered by status"""
    return [
        SessionResponse.model_validate(s)
        for s in service.get_sitter_sessions(sitter_id, status.upper() if status else None)
    ]


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: str,
    owner_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service),
):
    return SessionResponse.model_validate(service.get_session_for_owner(session_id, owner_id))


@router.post("/{session_id}/cancel", response_model=CancelResponse)
async def cancel_session(
    session_id: str,
    data: CancelRequest,
    background_tasks: BackgroundTasks,
    owner_id: str = Depends(get_current_user_id),
    service: CancellationService = Depends(get_cancellation_service),
):
    """Owner cancels one session; paid sessions are refunded minus the deduction"""
    session, refund = await service.cancel_session(
        session_id, data.reason, actor=ACTOR_OWNER, owner_id=owner_id
    )
    background_tasks.add_task(
        notify_session_cancelled,
        session.owner_id,
        session.sitter_id,
        session.id,
        refund.refund_amount if refund else None,
    )
    return CancelResponse(
        message=_cancel_message(refund),
        session=SessionResponse.model_validate(session),
        refund=refund,
    )


# ============================================================================
# SITTER ACTIONS
# ============================================================================


@router.post("/{session_id}/start", response_model=SessionResponse)
async def start_session(
    session_id: str,
    data: CodeSubmission,
    background_tasks: BackgroundTasks,
    sitter_id: str = Depends(get_current_sitter_id),
    service: SessionService = Depends(get_session_service),
):
    """Redeem the owner's START code"""
    session = service.start(session_id, data.code, sitter_id=sitter_id)
    background_tasks.add_task(notify_service_started, session.owner_id, session.id)
    return SessionResponse.model_validate(session)


@router.post("/{session_id}/end", response_model=SessionEndResponse)
async def end_session(
    session_id: str,
    data: CodeSubmission,
    background_tasks: BackgroundTasks,
    sitter_id: str = Depends(get_current_sitter_id),
    service: SessionService = Depends(get_session_service),
):
    """Redeem the owner's END code and credit the sitter"""
    session, earning = service.end(session_id, data.code, sitter_id=sitter_id)
    background_tasks.add_task(
        notify_service_completed, session.owner_id, session.sitter_id, session.id, earning.amount
    )
    return SessionEndResponse(
        session=SessionResponse.model_validate(session),
        earnings=earning.amount,
        available_at=earning.available_at,
    )


# ============================================================================
# PLATFORM ACTIONS
# ============================================================================


@router.post("/{session_id}/assign", response_model=SessionResponse)
async def assign_session(
    session_id: str,
    data: AssignRequest,
    _: str = Depends(require_admin),
    service: SessionService = Depends(get_session_service),
):
    return SessionResponse.model_validate(service.assign(session_id, data.sitter_id))


@router.post("/{session_id}/confirm", response_model=SessionResponse)
async def confirm_session(
    session_id: str,
    _: str = Depends(require_admin),
    service: SessionService = Depends(get_session_service),
):
    return SessionResponse.model_validate(service.confirm(session_id))


@router.post("/{session_id}/admin-cancel", response_model=CancelResponse)
async def admin_cancel_session(
    session_id: str,
    data: CancelRequest,
    background_tasks: BackgroundTasks,
    _: str = Depends(require_admin),
    service: CancellationService = Depends(get_cancellation_service),
):
    """Platform cancellation: CANCELLED status and a full refund"""
    session, refund = await service.cancel_session(session_id, data.reason, actor=ACTOR_ADMIN)
    background_tasks.add_task(
        notify_session_cancelled,
        session.owner_id,
        session.sitter_id,
        session.id,
        refund.refund_amount if refund else None,
    )
    return CancelResponse(
        message=_cancel_message(refund),
        session=SessionResponse.model_validate(session),
        refund=refund,
    )
