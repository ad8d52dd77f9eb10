"""Runner label generation."""

from __future__ import annotations

import secrets
import string
import time

from .constants import LABEL_RANDOM_CHARS, LABEL_TIMESTAMP_CHARS

_BASE36 = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_label(unit: str = "", *, now_ms: int | None = None) -> str:
    """Generate a short runner label, unique across a batch.

    The label is the last 4 base36 digits of the current millisecond
    timestamp followed by 4 random base36 characters. Batch units get their
    identity as a prefix, so labels from sibling units never collide.

    >>> len(generate_label())
    8
    >>> generate_label("arm64").startswith("arm64-")
    True
    """
    ms = now_ms if now_ms is not None else time.time_ns() // 1_000_000
    ts = to_base36(ms)[-LABEL_TIMESTAMP_CHARS:].rjust(LABEL_TIMESTAMP_CHARS, "0")
    rand = "".join(secrets.choice(_BASE36) for _ in range(LABEL_RANDOM_CHARS))
    label = f"{ts}{rand}"
    return f"{unit}-{label}" if unit else label
