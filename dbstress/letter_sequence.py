"""Deterministic, non-cryptographic pseudo-random lowercase letters."""

import os

from dbstress.byte_sequence import _resolve_offset
from dbstress.number_sequence import (
    INITIAL_STATE,
    LCG_INCREMENT,
    LCG_MULTIPLIER,
    to_uint64,
)

_UINT64_MASK = (1 << 64) - 1
_LETTERS_PER_WORD = 12
_SHIFTS = range(0, _LETTERS_PER_WORD * 5, 5)
_ORD_A = ord("a")


class LetterSequence:
    """Stream of pseudo-random lowercase ASCII letters of a fixed size."""

    def __init__(self, size: int) -> None:
        self.size = size
        self.offset = 0
        self._state = INITIAL_STATE

    def __enter__(self) -> "LetterSequence":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _fill(self, view: memoryview) -> None:
        state = self._state
        total = len(view)
        words = total // _LETTERS_PER_WORD
        for word in range(words):
            state = (state * LCG_MULTIPLIER + LCG_INCREMENT) & _UINT64_MASK
            start = word * _LETTERS_PER_WORD
            view[start : start + _LETTERS_PER_WORD] = bytes(
                (state >> shift) % 26 + _ORD_A for shift in _SHIFTS
            )
        for index in range(words * _LETTERS_PER_WORD, total):
            state = (state * LCG_MULTIPLIER + LCG_INCREMENT) & _UINT64_MASK
            view[index] = state % 26 + _ORD_A
        self._state = state

    def readinto(self, buf) -> int:
        """Fill ``buf`` up to the remaining size; return the count written."""
        if self.offset >= self.size:
            return 0
        view = memoryview(buf).cast("B")
        count = min(len(view), self.size - self.offset)
        if count == 0:
            return 0
        self._fill(view[:count])
        self.offset += count
        return count

    def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` letters (all remaining if negative); b"" at end."""
        remaining = self.size - self.offset
        if remaining <= 0:
            return b""
        if size < 0 or size > remaining:
            size = remaining
        buf = bytearray(size)
        count = self.readinto(buf)
        return bytes(buf[:count])

    def fill(self, buf) -> None:
        """Fill all of ``buf`` regardless of the stream size."""
        view = memoryview(buf).cast("B")
        if len(view) == 0:
            return
        self._fill(view)

    def letters(self, length: int) -> str:
        """Return ``length`` pseudo-random lowercase letters."""
        if length == 0:
            return ""
        buf = bytearray(length)
        self.fill(buf)
        return buf.decode("ascii")

    def seed(self, seed: int) -> None:
        """Reset the generator state to ``seed``."""
        self._state = to_uint64(seed)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Change the stream position (not the generator state)."""
        self.offset = _resolve_offset(offset, whence, self.offset, self.size)
        return self.offset

    def write(self, buf) -> int:
        """Discard ``buf``; nothing is reported as written."""
        return 0

    def close(self) -> None:
        """Drop the remaining size so further reads return nothing."""
        self.size = 0