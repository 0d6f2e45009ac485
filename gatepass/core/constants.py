"""Application constants.

This module contains magic strings and numbers used throughout the application.
Centralizing these values makes them easier to maintain and modify.
"""

# OTP Configuration
# OTPs are 6 ASCII digits drawn uniformly from [100000, 999999]
OTP_LENGTH = 6
OTP_MIN_VALUE = 100000
OTP_MAX_VALUE = 999999

# Pre-approved visitor OTPs are valid for 24 hours
VISITOR_OTP_TTL_HOURS = 24

# Phone-verification (login) OTPs are valid for 10 minutes
LOGIN_OTP_TTL_MINUTES = 10

# Visitor Field Limits
MIN_VISITOR_NAME_LENGTH = 2
MAX_VISITOR_NAME_LENGTH = 100
MAX_PURPOSE_LENGTH = 200
MAX_UNIT_NUMBER_LENGTH = 20
MAX_REJECTION_REASON_LENGTH = 200
MAX_ALERT_NOTES_LENGTH = 500

# Default reasons recorded when a resident denies or cancels a visit
DEFAULT_DENY_REASON = "Denied by resident"
DEFAULT_CANCEL_REASON = "Cancelled by resident"

# Client action surface
# Seconds before an in-flight action is abandoned and state is re-fetched
ACTION_TIMEOUT_SECONDS = 15.0

# JWT Token Configuration
# Token expiration time in minutes (7 days; mobile sessions are long-lived)
ACCESS_TOKEN_EXPIRE_MINUTES = 10080

# Wrong guesses allowed against one login OTP before a new one must be requested
MAX_LOGIN_OTP_ATTEMPTS = 5

# Notifications
# Newest notifications returned to a user's inbox
NOTIFICATION_LIST_LIMIT = 50
VISITOR_WAITING_TITLE = "🚪 Visitor Waiting"
