"""
Domain: digit arithmetic over mobile numbers (pure).

Two different "sums" exist in the business:
- digit_sum: plain sum of every digit ("Total"), e.g. 9876543210 -> 45
- digital_root: digit_sum repeated until one digit remains, stored on every
  record as `sum`, e.g. 9876543210 -> 45 -> 9
"""

from __future__ import annotations

from collections import Counter

MOBILE_LENGTH: int = 10


def _digits(mobile: str) -> list[int]:
    return [int(ch) for ch in str(mobile) if ch.isdigit()]


def digit_sum(mobile: str) -> int:
    return sum(_digits(mobile))


def digital_root(mobile: str) -> int:
    total = digit_sum(mobile)
    while total > 9:
        total = sum(int(ch) for ch in str(total))
    return total


def max_digit_repetition(mobile: str) -> int:
    """Highest number of times any single digit occurs in the mobile."""

    counts = Counter(ch for ch in str(mobile) if ch.isdigit())
    return max(counts.values(), default=0)


def is_valid_mobile(mobile: str | None) -> bool:
    if mobile is None:
        return False
    value = str(mobile)
    return len(value) == MOBILE_LENGTH and value.isascii() and value.isdigit()


__all__ = [
    "MOBILE_LENGTH",
    "digit_sum",
    "digital_root",
    "is_valid_mobile",
    "max_digit_repetition",
]
