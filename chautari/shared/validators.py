"""Shared validation utilities"""

import re
from datetime import date
from typing import Optional

from .constants import PA_COUNTIES


def validate_us_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize US phone number to E.164 format.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number in E.164 format (+1XXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    # Handle +1 prefix
    if digits.startswith("1") and len(digits) == 11:
        digits = digits[1:]

    # US phone numbers should have 10 digits
    if len(digits) != 10:
        raise ValueError("Please enter a valid US phone number")

    return f"+1{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_npi(npi: str) -> str:
    """NPI numbers are exactly 10 digits"""
    if not npi or not re.fullmatch(r"\d{10}", npi):
        raise ValueError("NPI must be exactly 10 digits")
    return npi


def validate_zip(zip_code: str) -> str:
    if not re.fullmatch(r"\d{5}(-\d{4})?", zip_code or ""):
        raise ValueError("Please enter a valid ZIP code")
    return zip_code


def validate_pa_county(county: str) -> str:
    """Match a county name case-insensitively and return its canonical spelling"""
    for known in PA_COUNTIES:
        if known.lower() == (county or "").strip().lower():
            return known
    raise ValueError("Please select your county")


def calculate_age(dob: date, today: Optional[date] = None) -> int:
    today = today or date.today()
    return today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))
