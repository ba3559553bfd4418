"""
Application configuration and constants for the ATT Transport booking server.

This module centralizes environment-based configuration, resource limits,
payment gateway settings, regular expressions and other constants.

Configuration values can be overridden via environment variables.
"""

from os import environ


# ---------------------------------------------------------------------------
# Application metadata
# ---------------------------------------------------------------------------
API_TITLE = "ATT Transport Booking Server"
API_VERSION = "1.0.0"


# ---------------------------------------------------------------------------
# Database configuration
# ---------------------------------------------------------------------------
PSQL_DB_DRIVER = environ.get("PSQL_DB_DRIVER", "postgresql")
PSQL_DB_USERNAME = environ.get("PSQL_DB_USERNAME", "postgres")
PSQL_DB_PORT = environ.get("PSQL_DB_PORT", "5432")
PSQL_DB_PASSWORD = environ.get("PSQL_DB_PASSWORD", "password")
PSQL_DB_HOST = environ.get("PSQL_DB_HOST", "localhost")
PSQL_DB_NAME = environ.get("PSQL_DB_NAME", "postgres")
# Full SQLAlchemy URL, takes precedence over the PSQL_DB_* values when set
DB_URL = environ.get("DB_URL")


# ---------------------------------------------------------------------------
# OpenObserve configuration
# ---------------------------------------------------------------------------
OPENOBSERVE_PROTOCOL = environ.get("OPENOBSERVE_PROTOCOL", "http")
OPENOBSERVE_HOST = environ.get("OPENOBSERVE_HOST", "localhost")
OPENOBSERVE_PORT = environ.get("OPENOBSERVE_PORT", "5080")
OPENOBSERVE_USERNAME = environ.get("OPENOBSERVE_USERNAME", "admin@atttransport.com")
OPENOBSERVE_PASSWORD = environ.get("OPENOBSERVE_PASSWORD", "password")
OPENOBSERVE_ORG = environ.get("OPENOBSERVE_ORG", "att")
OPENOBSERVE_STREAM = environ.get("OPENOBSERVE_STREAM", "att-booking-server")


# ---------------------------------------------------------------------------
# Hubtel checkout configuration
# ---------------------------------------------------------------------------
HUBTEL_CLIENT_ID = environ.get("HUBTEL_CLIENT_ID", "")
HUBTEL_CLIENT_SECRET = environ.get("HUBTEL_CLIENT_SECRET", "")
HUBTEL_MERCHANT_NUMBER = environ.get("HUBTEL_MERCHANT_NUMBER", "")
HUBTEL_CHECKOUT_URL = environ.get(
    "HUBTEL_CHECKOUT_URL", "https://payproxyapi.hubtel.com/items/initiate"
)
HUBTEL_CALLBACK_URL = environ.get(
    "HUBTEL_CALLBACK_URL",
    "http://localhost:8080/public/payment/hubtel/webhook",
)
HUBTEL_RETURN_URL = environ.get("HUBTEL_RETURN_URL", "https://att-transport.local/")
HUBTEL_CHECKOUT_DESCRIPTION = "ATT Transport Ticket"
HUBTEL_SUCCESS_CODE = "0000"

# Provider status strings accepted as "paid" (exact, case-sensitive match)
HUBTEL_PAID_STATUSES = [
    status.strip()
    for status in environ.get(
        "HUBTEL_PAID_STATUSES", "Success,Successful,Completed,PAID,Paid"
    ).split(",")
    if status.strip()
]


# ---------------------------------------------------------------------------
# Hubtel SMS configuration (falls back to the checkout credentials)
# ---------------------------------------------------------------------------
HUBTEL_SMS_CLIENT_ID = environ.get("HUBTEL_SMS_CLIENT_ID", HUBTEL_CLIENT_ID)
HUBTEL_SMS_CLIENT_SECRET = environ.get("HUBTEL_SMS_CLIENT_SECRET", HUBTEL_CLIENT_SECRET)
HUBTEL_SMS_FROM = environ.get("HUBTEL_SMS_FROM", "ATTTransport")
HUBTEL_SMS_URL = environ.get(
    "HUBTEL_SMS_URL", "https://sms.hubtel.com/v1/messages/send"
)
MAX_SMS_LENGTH = 300  # Characters per confirmation message


# ---------------------------------------------------------------------------
# Outbound HTTP
# ---------------------------------------------------------------------------
HTTP_TIMEOUT = float(environ.get("HTTP_TIMEOUT", "15"))  # Seconds per request


# ---------------------------------------------------------------------------
# Resource upper limits
# ---------------------------------------------------------------------------
MAX_ADMIN_TOKENS = 5  # Maximum tokens per admin
MAX_TOKEN_VALIDITY = 7 * 24 * 60 * 60  # Token validity (in seconds, 7 days)
MAX_SEATS_PER_BUS = 120


# ---------------------------------------------------------------------------
# Regex constants (input validation)
# ---------------------------------------------------------------------------
REGEX_PASSWORD = r"^[a-zA-Z0-9-+,.@_$%&*#!^=/?]*$"
REGEX_PHONE = r"^\+?[0-9 \-]{7,20}$"


# ---------------------------------------------------------------------------
# Booking constants
# ---------------------------------------------------------------------------
CURRENCY = "GHS"
BOOKING_REFERENCE_LENGTH = 8  # Characters of the booking id shown to passengers
GHANA_COUNTRY_CODE = "233"


# ---------------------------------------------------------------------------
# Analytics constants
# ---------------------------------------------------------------------------
ANALYTICS_MONTHS = 6
ANALYTICS_DAYS = 7
