import re

from booking import conf

MOBILE_DIGITS = 10
MOBILE_PATTERN = re.compile(r'^[6-9]\d{9}$')


def _clean_digits(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def normalize_phone(phone_value: str, default_country_code: str = None) -> str:
    """Return the national 10-digit form of an Indian mobile number.

    Formatting characters are stripped, then a leading country code (91 by
    default) or trunk 0 is removed when the number is longer than ten digits.
    Anything else is returned as bare digits so validation can reject it.
    """
    country_code = _clean_digits(default_country_code or conf.get('DEFAULT_COUNTRY_CODE'))
    digits = _clean_digits(phone_value)

    if country_code and digits.startswith(country_code) and len(digits) > MOBILE_DIGITS:
        digits = digits[len(country_code):]

    if digits.startswith('0') and len(digits) > MOBILE_DIGITS:
        digits = digits[1:]

    return digits


def is_valid_phone_input(phone_value: str) -> bool:
    """Check that a phone-like value is a real 10-digit mobile number."""
    return bool(MOBILE_PATTERN.match(normalize_phone(phone_value)))


def format_phone_display(phone_value: str) -> str:
    digits = _clean_digits(phone_value)
    if len(digits) == MOBILE_DIGITS:
        return f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"
    return phone_value
