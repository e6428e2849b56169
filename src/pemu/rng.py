from __future__ import annotations

import math
import threading
import time

_MASK64 = 0xFFFFFFFFFFFFFFFF
_DOUBLE_UNIT = 1.110223024625156786942664549657e-16  # 2**-53

_default_lock = threading.Lock()
_default: "RandomSource | None" = None


class RandomSource:
    """Seedable three-register (LCG / xorshift / multiply-with-carry) generator.

    Same seed, same sequence. Not suitable for anything cryptographic.
    """

    def __init__(self, seed: int) -> None:
        self.seed = seed & _MASK64
        self._lock = threading.Lock()
        self._v = 4101842887655102017
        self._w = 1
        self._u = self.seed ^ self._v
        self._step()
        self._v = self._u
        self._step()
        self._w = self._v
        self._step()

    def _step(self) -> int:
        self._u = (self._u * 2862933555777941757 + 7046029254386353087) & _MASK64
        v = self._v
        v ^= v >> 17
        v ^= (v << 31) & _MASK64
        v ^= v >> 8
        self._v = v
        self._w = (4294957665 * (self._w & 0xFFFFFFFF) + (self._w >> 32)) & _MASK64
        x = self._u ^ ((self._u << 21) & _MASK64)
        x ^= x >> 35
        x ^= (x << 4) & _MASK64
        return ((x + self._v) & _MASK64) ^ self._w

    def next_u64(self) -> int:
        with self._lock:
            return self._step()

    def next_f64(self) -> float:
        return _DOUBLE_UNIT * (self.next_u64() >> 11)

    def uniform(self, min_value: float, max_value: float) -> float:
        return self.next_f64() * (max_value - min_value) + min_value

    def gaussian(self, std_dev: float) -> float:
        x = self.uniform(0.0, 1.0)
        while x == 0.0:
            x = self.uniform(0.0, 1.0)
        y = self.uniform(0.0, 1.0)
        z = math.sqrt(-2.0 * math.log(x)) * math.cos(2.0 * math.pi * y)
        return std_dev * z


def default_source() -> RandomSource:
    """Process-wide generator, seeded from the wall clock on first use."""
    global _default
    with _default_lock:
        if _default is None:
            _default = RandomSource(time.time_ns() // 1000)
        return _default


def seed_default(seed: int) -> RandomSource:
    global _default
    with _default_lock:
        _default = RandomSource(seed)
        return _default
