"""Tracking number generation."""

import secrets
import string
import time
from typing import Optional

from pigeonpost.config import config

BASE36_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    """Uppercase base-36 representation of a non-negative integer."""
    if value < 0:
        raise ValueError('value must be non-negative')
    if value == 0:
        return '0'

    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return ''.join(reversed(digits))


def generate_tracking_number(
    prefix: Optional[str] = None,
    now_ms: Optional[int] = None,
    suffix_length: int = 3,
) -> str:
    """
    Build a tracking number: prefix + base36(epoch millis) + random suffix.

    e.g. 'PPS' + 'MGX1Q2K4' + 'A7Z'. Uniqueness against the store is the
    caller's job.
    """
    prefix = config.tracking.number_prefix if prefix is None else prefix
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = ''.join(secrets.choice(BASE36_ALPHABET) for _ in range(suffix_length))
    return f'{prefix}{to_base36(now_ms)}{suffix}'
