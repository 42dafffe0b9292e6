"""Chronologically ordered unique keys for appended records."""

from __future__ import annotations

import random
import time
from threading import Lock
from typing import Callable, List

# ASCII-ordered, so generated keys sort lexicographically by creation time.
PUSH_CHARS = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"

_TIMESTAMP_CHARS = 8
_RANDOM_CHARS = 12


class PushIdGenerator:
    """Generate 20-character keys: 8 chars of epoch millis, 12 random chars.

    Keys generated within the same millisecond reuse the previous random part
    incremented by one, so they remain strictly increasing.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ) -> None:
        self._clock = clock
        self._rng = rng or random.SystemRandom()
        self._last_ms = -1
        self._last_random: List[int] = [0] * _RANDOM_CHARS
        self._lock = Lock()

    def __call__(self) -> str:
        now_ms = int(self._clock() * 1000)
        with self._lock:
            duplicate = now_ms == self._last_ms
            self._last_ms = now_ms

            timestamp_chars: List[str] = []
            remaining = now_ms
            for _ in range(_TIMESTAMP_CHARS):
                timestamp_chars.append(PUSH_CHARS[remaining % 64])
                remaining //= 64
            if remaining:
                raise ValueError("Timestamp is too large to encode in a push key.")

            if duplicate:
                self._increment_random()
            else:
                self._last_random = [self._rng.randrange(64) for _ in range(_RANDOM_CHARS)]

            random_chars = "".join(PUSH_CHARS[index] for index in self._last_random)
            return "".join(reversed(timestamp_chars)) + random_chars

    def _increment_random(self) -> None:
        position = _RANDOM_CHARS - 1
        while position >= 0 and self._last_random[position] == 63:
            self._last_random[position] = 0
            position -= 1
        if position < 0:
            raise RuntimeError("Exhausted push keys for the current millisecond.")
        self._last_random[position] += 1
