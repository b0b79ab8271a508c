"""
BitString value type.

The sequence under analysis is an immutable string over {'0', '1'}. Numeric
views (uint8 array, ones count, content hash) are derived lazily and cached on
the instance, so every metric and detector run against the same BitString
shares one conversion.

Design rationale:
- Text form is the canonical representation (cheap slicing, regex scans)
- numpy view is read-only; the engine never mutates input
- Content hash keys the metric result cache
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Optional, Union

import numpy as np

from bitsentinel.core.config import config
from bitsentinel.core.exceptions import InputError

logger = logging.getLogger(__name__)

_DROP_BINARY = str.maketrans("", "", "01")


def _first_invalid(text: str) -> int:
    for offset, symbol in enumerate(text):
        if symbol not in "01":
            return offset
    return -1


@dataclass(frozen=True)
class BitString:
    """
    Immutable ordered sequence of binary symbols.

    Attributes:
        bits: text form, every character is '0' or '1'

    Raises:
        InputError: if bits is not a str or contains any other symbol
    """

    bits: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.bits, str):
            raise InputError(f"BitString expects str, got {type(self.bits).__name__}")
        if self.bits.translate(_DROP_BINARY):
            offset = _first_invalid(self.bits)
            raise InputError(
                f"Non-binary symbol {self.bits[offset]!r} at offset {offset}"
            )

    @classmethod
    def from_bytes(cls, data: bytes) -> "BitString":
        """Expand raw bytes MSB-first into a BitString."""
        if not data:
            return cls("")
        unpacked = np.unpackbits(np.frombuffer(data, dtype=np.uint8))
        return cls((unpacked + ord("0")).tobytes().decode("ascii"))

    @classmethod
    def from_array(cls, values: np.ndarray) -> "BitString":
        """Build from any integer array holding only 0 and 1."""
        arr = np.asarray(values)
        if arr.size and not np.isin(arr, (0, 1)).all():
            raise InputError("Array contains values other than 0 and 1")
        return cls((arr.astype(np.uint8) + ord("0")).tobytes().decode("ascii"))

    def __len__(self) -> int:
        return len(self.bits)

    def __str__(self) -> str:
        return self.bits

    def __repr__(self) -> str:
        preview = self.bits if len(self.bits) <= 32 else self.bits[:32] + "..."
        return f"BitString({preview!r}, n={len(self.bits)})"

    @cached_property
    def array(self) -> np.ndarray:
        """Read-only uint8 view of the bits (values 0 and 1)."""
        arr = np.frombuffer(self.bits.encode("ascii"), dtype=np.uint8) - ord("0")
        arr.flags.writeable = False
        return arr

    @cached_property
    def ones(self) -> int:
        return self.bits.count("1")

    @property
    def zeros(self) -> int:
        return len(self.bits) - self.ones

    @cached_property
    def content_hash(self) -> str:
        return hashlib.sha256(self.bits.encode("ascii")).hexdigest()

    def slice(self, start: int = 0, end: Optional[int] = None) -> "BitString":
        """Half-open sub-range [start, end), clamped to the sequence."""
        n = len(self.bits)
        end = n if end is None else end
        start = max(0, min(start, n))
        end = max(start, min(end, n))
        return BitString(self.bits[start:end])


BitsLike = Union[BitString, str, bytes]


def sanitize_bits(text: str) -> str:
    """Drop every symbol outside {'0', '1'}."""
    return "".join(ch for ch in text if ch == "0" or ch == "1")


def coerce_bits(value: BitsLike, policy: Optional[str] = None) -> BitString:
    """
    Apply the configured input policy and return a BitString.

    Args:
        value: BitString (returned unchanged), text, or raw bytes (expanded MSB-first)
        policy: 'reject' or 'sanitize' (config.input.policy if None)

    Raises:
        InputError: under 'reject' when text contains non-binary symbols
    """
    if isinstance(value, BitString):
        return value
    if isinstance(value, (bytes, bytearray)):
        return BitString.from_bytes(bytes(value))
    if not isinstance(value, str):
        raise InputError(f"Unsupported bit source: {type(value).__name__}")

    policy = (policy or config.input.policy).lower()
    if policy == "sanitize":
        cleaned = sanitize_bits(value)
        dropped = len(value) - len(cleaned)
        if dropped:
            logger.debug("Sanitized %d non-binary symbols from input", dropped)
        return BitString(cleaned)
    if policy == "reject":
        return BitString(value)
    raise InputError(f"Unknown input policy: {policy}")
