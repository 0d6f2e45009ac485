"""Input sanitization utilities."""
import re
from typing import Optional

from gatepass.core.constants import (
    MAX_PURPOSE_LENGTH,
    MAX_UNIT_NUMBER_LENGTH,
    MAX_VISITOR_NAME_LENGTH,
    MIN_VISITOR_NAME_LENGTH,
    OTP_LENGTH,
)


# Indian mobile numbers: 10 digits starting with 6-9, optionally prefixed by 91
MOBILE_PATTERN = re.compile(r'^[6-9][0-9]{9}$')
MOBILE_WITH_COUNTRY_PATTERN = re.compile(r'^91[6-9][0-9]{9}$')
UNIT_NUMBER_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9/ -]*$')
OTP_PATTERN = re.compile(r'^[0-9]{%d}$' % OTP_LENGTH)


def sanitize_text(text: str, max_length: Optional[int] = None, strip_html: bool = True) -> str:
    """
    Sanitize text input to prevent XSS attacks.

    Note: This function strips HTML tags and normalizes whitespace, but does NOT
    escape HTML entities; clients escape output when rendering.

    Args:
        text: The input text to sanitize
        max_length: Optional maximum length to enforce
        strip_html: Whether to strip HTML tags (default True)

    Returns:
        Sanitized text with HTML tags removed and whitespace normalized

    Raises:
        ValueError: If text exceeds max_length or contains dangerous patterns
    """
    if not isinstance(text, str):
        raise ValueError("Input must be a string")

    # Strip leading/trailing whitespace
    sanitized = text.strip()

    # Enforce maximum length before processing to prevent length-based attacks
    if max_length and len(sanitized) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    # Strip HTML tags completely if requested (prevents injection entirely)
    if strip_html:
        sanitized = re.sub(r'<[^>]*>', '', sanitized)

    # Reject inputs that still contain HTML-like patterns after stripping
    if '<' in sanitized or '>' in sanitized:
        raise ValueError("Input contains invalid HTML-like patterns")

    # Normalize internal whitespace (replace multiple spaces with single space)
    sanitized = re.sub(r'\s+', ' ', sanitized)

    return sanitized


def sanitize_visitor_name(name: str) -> str:
    """
    Sanitize a visitor's name.

    Raises:
        ValueError: If the name is missing, too short or too long
    """
    sanitized = sanitize_text(name, max_length=MAX_VISITOR_NAME_LENGTH)

    if not sanitized:
        raise ValueError("Please enter visitor name")

    if len(sanitized) < MIN_VISITOR_NAME_LENGTH:
        raise ValueError(
            f"Visitor name must be at least {MIN_VISITOR_NAME_LENGTH} characters"
        )

    return sanitized


def sanitize_purpose(purpose: Optional[str]) -> Optional[str]:
    """Sanitize optional free-text purpose; blank becomes None."""
    if purpose is None:
        return None
    sanitized = sanitize_text(purpose, max_length=MAX_PURPOSE_LENGTH)
    return sanitized or None


def sanitize_phone(phone: str) -> str:
    """
    Normalize a visitor phone number to 10 digits.

    Spaces, hyphens and a leading +91/91 are removed.

    Raises:
        ValueError: If the result is not a valid Indian mobile number
    """
    if not isinstance(phone, str):
        raise ValueError("Phone number must be a string")

    digits = re.sub(r'[^0-9]', '', phone)

    if MOBILE_WITH_COUNTRY_PATTERN.match(digits):
        digits = digits[2:]

    if not MOBILE_PATTERN.match(digits):
        raise ValueError("Please enter a valid 10-digit mobile number")

    return digits


def normalize_login_phone(phone: str) -> str:
    """
    Normalize a login phone number to E.164 form (+91XXXXXXXXXX).

    Raises:
        ValueError: If phone is missing or not a valid Indian mobile number
    """
    if not phone or not phone.strip():
        raise ValueError("Phone number is required")
    return f"+91{sanitize_phone(phone)}"


def sanitize_unit_number(unit_number: str) -> str:
    """
    Sanitize a unit number such as "A-101".

    Only surrounding whitespace is trimmed; case is preserved because unit
    lookup is an exact, case-sensitive match.

    Raises:
        ValueError: If the unit number is empty, too long or malformed
    """
    if not isinstance(unit_number, str):
        raise ValueError("Unit number must be a string")

    sanitized = unit_number.strip()

    if not sanitized:
        raise ValueError("Unit number cannot be empty")

    if len(sanitized) > MAX_UNIT_NUMBER_LENGTH:
        raise ValueError(
            f"Unit number exceeds maximum length of {MAX_UNIT_NUMBER_LENGTH} characters"
        )

    if not UNIT_NUMBER_PATTERN.match(sanitized):
        raise ValueError("Unit number can only contain letters, numbers, spaces, '/' and '-'")

    return sanitized


def validate_otp_format(otp: str) -> str:
    """
    Validate that an OTP is exactly six ASCII digits.

    Surrounding whitespace is tolerated; anything else is rejected before a
    database round trip is spent on it.
    """
    if not isinstance(otp, str):
        raise ValueError("OTP must be a string")

    otp = otp.strip()

    if not OTP_PATTERN.match(otp):
        raise ValueError(f"Please enter a valid {OTP_LENGTH}-digit OTP")

    return otp


def mask_phone(phone: Optional[str]) -> Optional[str]:
    """Mask a phone number for display to roles that do not own the visit."""
    if not phone:
        return phone
    if len(phone) >= 10:
        return f"{phone[:2]}****{phone[-2:]}"
    return phone
