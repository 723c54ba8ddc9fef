"""Deterministic, non-cryptographic pseudo-random number generator."""

LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223
INITIAL_STATE = 0x490C734AD1CCF6E9

_UINT64_MASK = (1 << 64) - 1
_INT64_SIGN = 1 << 63


def to_int64(value: int) -> int:
    """Wrap an integer to a signed 64-bit value."""
    value &= _UINT64_MASK
    return value - (1 << 64) if value & _INT64_SIGN else value


def to_uint64(value: int) -> int:
    """Wrap an integer to an unsigned 64-bit value."""
    return value & _UINT64_MASK


class NumberSequence:
    """Linear congruential generator producing non-negative 64-bit numbers."""

    def __init__(self) -> None:
        self._state = to_int64(INITIAL_STATE)

    def next(self) -> int:
        """Advance the generator and return the magnitude of the new state."""
        self._state = to_int64(self._state * LCG_MULTIPLIER + LCG_INCREMENT)
        if self._state >= 0:
            return self._state
        return to_int64(-self._state)

    def seed(self, seed: int) -> None:
        """Reset the generator state to ``seed``."""
        self._state = to_int64(seed)