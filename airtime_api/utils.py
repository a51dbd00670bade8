"""
Small formatting helpers shared by services and routers.

Phone numbers: both PayNecta and Statum expect MSISDNs in the international
254XXXXXXXXX form without a plus sign. Members type numbers every which way,
so every phone input goes through format_phone_number().
"""

import re

_NON_DIGITS = re.compile(r"[^0-9]")

COUNTRY_CODE = "254"


def format_phone_number(phone: str) -> str:
    """
    Normalise a Kenyan phone number to 254XXXXXXXXX.

        >>> format_phone_number("0712 345 678")
        '254712345678'
        >>> format_phone_number("+254712345678")
        '254712345678'
        >>> format_phone_number("712345678")
        '254712345678'
    """
    digits = _NON_DIGITS.sub("", phone)
    if digits.startswith("0"):
        return COUNTRY_CODE + digits[1:]
    if digits.startswith(COUNTRY_CODE):
        return digits
    return COUNTRY_CODE + digits


def format_kes(amount_cents: int) -> str:
    """
    Render an integer-cent amount for humans.

        >>> format_kes(660_00)
        'KES 660.00'
        >>> format_kes(123456)
        'KES 1,234.56'
    """
    sign = "-" if amount_cents < 0 else ""
    whole, cents = divmod(abs(amount_cents), 100)
    return f"{sign}KES {whole:,}.{cents:02d}"


def validate_phone_number(phone: str) -> str:
    """
    format_phone_number() plus a sanity check, for request validation.

    Raises:
        ValueError: If the result isn't a 254 number with a 9-digit subscriber part.
    """
    formatted = format_phone_number(phone)
    if len(formatted) != 12:
        raise ValueError(f"{phone!r} is not a valid Kenyan phone number")
    return formatted
