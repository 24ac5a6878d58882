import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID string primary key"""
    return str(uuid.uuid4())


class SessionStatus:
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    CONFIRMED = "CONFIRMED"
    UPCOMING = "UPCOMING"  # legacy label, treated like CONFIRMED
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    USERCANCELLED = "USERCANCELLED"

    STARTABLE = frozenset({ASSIGNED, CONFIRMED, UPCOMING})
    CANCELLABLE = frozenset({PENDING, ASSIGNED, CONFIRMED, UPCOMING})
    TERMINAL = frozenset({COMPLETED, CANCELLED, USERCANCELLED})


class PaymentStatus:
    PENDING = "PENDING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


class CodeType:
    START = "START"
    END = "END"


class RefundStatus:
    INITIATED = "INITIATED"
    FAILED_PENDING_MANUAL = "FAILED_PENDING_MANUAL"


class GatewayPaymentStatus:
    CREATED = "CREATED"
    CAPTURED = "CAPTURED"
    FAILED = "FAILED"


class LedgerEntryType:
    EARNING = "earning"
    WITHDRAWAL = "withdrawal"


class LedgerEntryStatus:
    PENDING = "pending"
    AVAILABLE = "available"
    WITHDRAWN = "withdrawn"


class Service(Base):
    """Catalog entry; its price is the only trusted unit price"""

    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)
    duration_minutes = Column(Integer, default=60, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Booking(Base):
    """A one-time or recurring booking request, immutable once accepted"""

    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    owner_id = Column(String(36), nullable=False, index=True)
    pet_id = Column(String(36), nullable=False)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    address_id = Column(String(36), nullable=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)  # recurring only
    time = Column(String(5), nullable=False)  # HH:MM
    duration_minutes = Column(Integer, default=60, nullable=False)

    is_recurring = Column(Boolean, default=False, nullable=False)
    recurring_pattern = Column(String(255), nullable=True)  # canonical pattern string

    declared_total = Column(Float, nullable=False)
    expected_total = Column(Float, nullable=False)
    payment_option = Column(String(20), default="pay-later", nullable=False)
    payment_status = Column(String(20), default=PaymentStatus.PENDING, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    service = relationship("Service")
    sessions = relationship(
        "BookingSession",
        back_populates="booking",
        order_by="BookingSession.sequence_number",
    )


class BookingSession(Base):
    """One scheduled occurrence of a booking"""

    __tablename__ = "booking_sessions"
    __table_args__ = (UniqueConstraint("booking_id", "sequence_number"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, index=True)
    owner_id = Column(String(36), nullable=False, index=True)
    sitter_id = Column(String(36), nullable=True, index=True)

    sequence_number = Column(Integer, nullable=False)  # 1-based, chronological
    session_date = Column(Date, nullable=False)
    session_time = Column(String(5), nullable=False)
    duration_minutes = Column(Integer, default=60, nullable=False)
    unit_price = Column(Float, nullable=False)  # snapshot at creation, never re-read

    # Status workflow: PENDING → ASSIGNED → CONFIRMED → ONGOING → COMPLETED
    # CANCELLED / USERCANCELLED only from PENDING, ASSIGNED, CONFIRMED (or UPCOMING)
    status = Column(String(20), default=SessionStatus.PENDING, nullable=False, index=True)
    payment_status = Column(String(20), default=PaymentStatus.PENDING, nullable=False)

    service_started_at = Column(DateTime, nullable=True)
    service_ended_at = Column(DateTime, nullable=True)
    actual_duration = Column(Integer, nullable=True)  # minutes, recurring sessions only
    completed_at = Column(DateTime, nullable=True)

    cancellation_reason = Column(Text, nullable=True)
    cancelled_by = Column(String(20), nullable=True)  # owner, admin
    cancelled_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    booking = relationship("Booking", back_populates="sessions")
    codes = relationship("ServiceCode", back_populates="session")


class ServiceCode(Base):
    """Single-use 6-digit code gating the start or the end of a session"""

    __tablename__ = "service_codes"
    __table_args__ = (UniqueConstraint("session_id", "code_type"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    session_id = Column(
        String(36), ForeignKey("booking_sessions.id"), nullable=False, index=True
    )
    code_type = Column(String(5), nullable=False)  # START, END
    code = Column(String(6), nullable=False)
    is_used = Column(Boolean, default=False, nullable=False)
    used_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    session = relationship("BookingSession", back_populates="codes")


class Payment(Base):
    """Gateway payment order and its capture state"""

    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_id)
    owner_id = Column(String(36), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=True, index=True)
    session_id = Column(String(36), ForeignKey("booking_sessions.id"), nullable=True)

    amount = Column(Float, nullable=False)
    currency = Column(String(10), default="INR", nullable=False)
    gateway_order_id = Column(String(255), nullable=True, index=True)
    gateway_payment_id = Column(String(255), nullable=True)
    status = Column(String(20), default=GatewayPaymentStatus.CREATED, nullable=False)
    gateway_response = Column(JSON, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class PaymentRefund(Base):
    """Refund intent recorded for a cancelled, paid session"""

    __tablename__ = "payment_refunds"

    id = Column(String(36), primary_key=True, default=generate_id)
    session_id = Column(
        String(36), ForeignKey("booking_sessions.id"), nullable=False, index=True
    )
    payment_id = Column(String(36), ForeignKey("payments.id"), nullable=True)

    requested_amount = Column(Float, nullable=False)
    deduction_percent = Column(Float, nullable=False)
    deduction_amount = Column(Float, nullable=False)
    refund_amount = Column(Float, nullable=False)

    gateway_refund_id = Column(String(255), nullable=True)  # null until the gateway accepts
    status = Column(String(30), default=RefundStatus.INITIATED, nullable=False, index=True)
    failure_reason = Column(Text, nullable=True)
    attempts = Column(Integer, default=0, nullable=False)
    gateway_response = Column(JSON, nullable=True)

    initiated_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    session = relationship("BookingSession")
    payment = relationship("Payment")


class ConfigSetting(Base):
    """Runtime-tunable key/value settings"""

    __tablename__ = "config_settings"

    key = Column(String(100), primary_key=True)
    value = Column(String(255), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class SitterWallet(Base):
    __tablename__ = "sitter_wallets"

    id = Column(String(36), primary_key=True, default=generate_id)
    sitter_id = Column(String(36), unique=True, nullable=False, index=True)
    balance = Column(Float, default=0.0, nullable=False)  # withdrawable
    pending_amount = Column(Float, default=0.0, nullable=False)  # on hold
    total_earnings = Column(Float, default=0.0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    transactions = relationship(
        "WalletTransaction",
        back_populates="wallet",
        order_by="WalletTransaction.created_at.desc()",
    )


class WalletTransaction(Base):
    """Ledger entry; earnings become withdrawable once available_at elapses"""

    __tablename__ = "wallet_transactions"

    id = Column(String(36), primary_key=True, default=generate_id)
    wallet_id = Column(String(36), ForeignKey("sitter_wallets.id"), nullable=False, index=True)
    session_id = Column(String(36), ForeignKey("booking_sessions.id"), nullable=True)
    amount = Column(Float, nullable=False)
    transaction_type = Column(String(20), nullable=False)  # earning, withdrawal
    status = Column(String(20), default=LedgerEntryStatus.PENDING, nullable=False)
    description = Column(String(255), nullable=True)
    available_at = Column(DateTime, nullable=True)
    meta = Column("metadata", JSON, nullable=True)  # audit snapshot of the session
    created_at = Column(DateTime, server_default=func.now())

    wallet = relationship("SitterWallet", back_populates="transactions")
