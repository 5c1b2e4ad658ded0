"""Contact identifier detection in free chat text."""

import re

from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

EMAIL_CANDIDATE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")


def is_valid_email(value: str) -> bool:
    """Full address-grammar check (email-validator, no DNS lookups)."""
    try:
        validate_email(value)
    except PydanticCustomError:
        return False
    return True


def normalize_email(value: str) -> str:
    return value.strip().lower()


def detect_email(text: str) -> str | None:
    """Return the first valid email address in ``text``, normalized, or None."""
    for match in EMAIL_CANDIDATE.finditer(text):
        candidate = match.group()
        if is_valid_email(candidate):
            return normalize_email(candidate)
    return None
