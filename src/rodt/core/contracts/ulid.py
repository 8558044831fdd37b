"""
ULID token id generator.

A ULID is 26 Crockford base32 characters: a 48-bit millisecond timestamp
followed by 80 bits of randomness. Ids sort by creation time. Within one
millisecond the generator increments the random part instead of drawing a
new one, so ids from the same generator are strictly increasing.
"""

from __future__ import annotations

import secrets
import threading
import time

CROCKFORD_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"

TIMESTAMP_BITS = 48
RANDOM_BITS = 80
ULID_LENGTH = 26

_MAX_TIMESTAMP = (1 << TIMESTAMP_BITS) - 1
_MAX_RANDOM = (1 << RANDOM_BITS) - 1


def encode_ulid(value: int) -> str:
    """Encode a 128-bit integer as 26 Crockford base32 characters."""
    chars = []
    for _ in range(ULID_LENGTH):
        chars.append(CROCKFORD_ALPHABET[value & 0x1F])
        value >>= 5
    return "".join(reversed(chars))


def decode_timestamp(ulid: str) -> int:
    """Return the millisecond timestamp embedded in ``ulid``."""
    if len(ulid) != ULID_LENGTH:
        raise ValueError(f"ULID must be {ULID_LENGTH} characters, got {len(ulid)}")
    value = 0
    for char in ulid.upper():
        index = CROCKFORD_ALPHABET.find(char)
        if index < 0:
            raise ValueError(f"Invalid ULID character {char!r}")
        value = (value << 5) | index
    return value >> RANDOM_BITS


class ULIDGenerator:
    """Monotonic ULID source."""

    def __init__(self, clock=None) -> None:
        self._clock = clock or (lambda: int(time.time() * 1000))
        self._lock = threading.Lock()
        self._last_timestamp = -1
        self._last_random = 0

    def generate(self) -> str:
        with self._lock:
            timestamp = self._clock()
            if timestamp > _MAX_TIMESTAMP:
                raise ValueError("ULID timestamp overflow")
            if timestamp <= self._last_timestamp:
                # Same (or rewound) clock: stay on the last timestamp and count up
                timestamp = self._last_timestamp
                random_part = self._last_random + 1
                if random_part > _MAX_RANDOM:
                    timestamp += 1
                    random_part = secrets.randbits(RANDOM_BITS)
            else:
                random_part = secrets.randbits(RANDOM_BITS)
            self._last_timestamp = timestamp
            self._last_random = random_part
        return encode_ulid((timestamp << RANDOM_BITS) | random_part)
