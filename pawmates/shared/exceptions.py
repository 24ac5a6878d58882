"""Typed failures raised by the booking and settlement core"""


class PawmatesError(Exception):
    """Base error; carries the HTTP status the request handlers answer with"""

    status_code = 400
    default_detail = "Request could not be processed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFoundError(PawmatesError):
    status_code = 404
    default_detail = "Not found"


class InvalidPatternError(PawmatesError):
    """Malformed recurrence pattern string"""

    default_detail = "Invalid recurrence pattern"


class EmptyScheduleError(PawmatesError):
    """A recurring booking whose date range yields no sessions"""

    default_detail = "The selected pattern produces no sessions in this date range"


class PriceMismatchError(PawmatesError):
    """Client-declared total differs from the server-side recomputation"""

    default_detail = "Price validation failed. Please refresh and try again."

    def __init__(self, expected: float, declared: float, detail: str | None = None):
        self.expected = expected
        self.declared = declared
        super().__init__(detail)


class PaymentVerificationError(PawmatesError):
    default_detail = "Payment could not be verified for this booking"


class InvalidOrExpiredCodeError(PawmatesError):
    """Wrong, reused or expired service code; session state is unchanged"""

    default_detail = "Invalid or expired code"


class NotCancellableError(PawmatesError):
    default_detail = "This session cannot be cancelled"


class PaymentGatewayError(PawmatesError):
    status_code = 502
    default_detail = "Payment gateway unavailable"


class RefundGatewayError(PaymentGatewayError):
    """Gateway refused or failed a refund; recorded, never fatal to cancellation"""

    default_detail = "Refund gateway error"


class InvalidTransitionError(PawmatesError):
    """Assignment or confirmation attempted from the wrong status"""

    status_code = 409
    default_detail = "Session is not in a state that allows this change"
