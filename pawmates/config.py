import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./pawmates.db")

# Razorpay Configuration
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET")
RAZORPAY_API_URL = os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1")
RAZORPAY_TIMEOUT_SECONDS = float(os.getenv("RAZORPAY_TIMEOUT_SECONDS", "30"))

# All amounts are in this single currency (minor unit = 1/100)
CURRENCY = os.getenv("CURRENCY", "INR")

# Booking / settlement rules
DEFAULT_CANCELLATION_DEDUCTION_PERCENT = float(
    os.getenv("DEFAULT_CANCELLATION_DEDUCTION_PERCENT", "10")
)
CANCELLATION_DEDUCTION_CONFIG_KEY = "percentageDeductionOnSelfCancellation"
EARNINGS_HOLD_DAYS = int(os.getenv("EARNINGS_HOLD_DAYS", "3"))
PRICE_TOLERANCE = float(os.getenv("PRICE_TOLERANCE", "0.01"))
REFUND_PROCESSING_TIME = "5-7 business days"
MANUAL_REFUND_PROCESSING_TIME = "7-10 business days (manual processing)"

# Service codes never expire unless this is set (hours after the scheduled start)
_code_expiry = os.getenv("SERVICE_CODE_EXPIRY_HOURS")
SERVICE_CODE_EXPIRY_HOURS = int(_code_expiry) if _code_expiry else None

# Refund reconciliation
REFUND_RETRY_MAX_ATTEMPTS = int(os.getenv("REFUND_RETRY_MAX_ATTEMPTS", "3"))
# INITIATED intents still without a gateway id this long after their last attempt were interrupted
REFUND_STALE_AFTER_MINUTES = int(os.getenv("REFUND_STALE_AFTER_MINUTES", "15"))

# Notification dispatch (log-only when unset)
NOTIFICATION_WEBHOOK_URL = os.getenv("NOTIFICATION_WEBHOOK_URL")
NOTIFICATION_TIMEOUT_SECONDS = float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "10"))
