"""Ecuadorian identity document checks."""
import re

_CEDULA_RE = re.compile(r"^\d{10}$")
_COEFFICIENTS = (2, 1, 2, 1, 2, 1, 2, 1, 2)


def is_valid_cedula(value: str) -> bool:
    """Validate a 10-digit cédula with the modulo-10 check digit.

    Province code (first two digits) must be 01-24 and the third digit below 6.
    """
    if not value or not _CEDULA_RE.match(value):
        return False
    province = int(value[:2])
    if province < 1 or province > 24:
        return False
    if int(value[2]) >= 6:
        return False

    total = 0
    for digit, coefficient in zip(value[:9], _COEFFICIENTS):
        product = int(digit) * coefficient
        if product >= 10:
            product -= 9
        total += product
    check_digit = (10 - total % 10) % 10
    return check_digit == int(value[9])
