"""Deterministic, non-cryptographic pseudo-random byte stream."""

import os
import struct

from dbstress.number_sequence import (
    INITIAL_STATE,
    LCG_INCREMENT,
    LCG_MULTIPLIER,
    NumberSequence,
    to_int64,
    to_uint64,
)

PATTERN_BLOCK_SIZE = 65536
_PATTERN_BLOCK = b"A" * PATTERN_BLOCK_SIZE
_UINT64_MASK = (1 << 64) - 1


def _f32(value: float) -> float:
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _resolve_offset(offset: int, whence: int, current: int, size: int) -> int:
    if whence == os.SEEK_SET:
        new_offset = offset
    elif whence == os.SEEK_CUR:
        new_offset = current + offset
    elif whence == os.SEEK_END:
        new_offset = size + offset
    else:
        raise ValueError(f"Invalid whence value {whence}")
    if new_offset < 0:
        raise ValueError(f"Cannot seek to negative offset {new_offset}")
    if new_offset > size:
        raise ValueError(
            f"Cannot seek past end of sequence to offset {new_offset} (size {size})"
        )
    return new_offset


class ByteSequence:
    """Stream of pseudo-random bytes of a fixed size."""

    def __init__(self, size: int) -> None:
        self.size = size
        self.offset = 0
        self._state = INITIAL_STATE

    def __enter__(self) -> "ByteSequence":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _fill(self, view: memoryview) -> None:
        state = self._state
        total = len(view)
        words = total // 8
        values = []
        for _ in range(words):
            state = (state * LCG_MULTIPLIER + LCG_INCREMENT) & _UINT64_MASK
            values.append(state)
        if words:
            view[: words * 8] = struct.pack(f"<{words}Q", *values)
        for index in range(words * 8, total):
            state = (state * LCG_MULTIPLIER + LCG_INCREMENT) & _UINT64_MASK
            view[index] = state & 0xFF
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
        """Read up to ``size`` bytes (all remaining if negative); b"" at end."""
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

    def pattern_fill(self, buf, compressibility: int) -> None:
        """Fill ``buf`` so that roughly ``compressibility`` percent is a repeated pattern."""
        view = memoryview(buf).cast("B")
        if len(view) == 0:
            return
        if compressibility == 0:
            self.fill(view)
            return

        blocks, leftover = divmod(len(view), PATTERN_BLOCK_SIZE)
        pattern_blocks = int(
            _f32(_f32(_f32(float(blocks)) * _f32(float(compressibility))) / 100.0)
        )
        random_blocks = blocks - pattern_blocks
        chooser = NumberSequence()
        chooser.seed(to_int64(self._state))

        for block in range(blocks):
            start = block * PATTERN_BLOCK_SIZE
            chunk = view[start : start + PATTERN_BLOCK_SIZE]
            if random_blocks == 0:
                chunk[:] = _PATTERN_BLOCK
                pattern_blocks -= 1
            elif pattern_blocks == 0:
                self._fill(chunk)
                random_blocks -= 1
            elif chooser.next() > 0:
                chunk[:] = _PATTERN_BLOCK
                pattern_blocks -= 1
            else:
                self._fill(chunk)
                random_blocks -= 1

        if leftover:
            tail = view[blocks * PATTERN_BLOCK_SIZE :]
            if chooser.next() > 0:
                tail[:] = _PATTERN_BLOCK[:leftover]
            else:
                self._fill(tail)

    def seed(self, seed: int) -> None:
        """Reset the generator state to ``seed``."""
        self._state = to_uint64(seed)

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Change the stream position (not the generator state)."""
        self.offset = _resolve_offset(offset, whence, self.offset, self.size)
        return self.offset

    def write(self, buf) -> int:
        """Discard ``buf`` and report it as fully written."""
        return len(buf)

    def close(self) -> None:
        """Drop the remaining size so further reads return nothing."""
        self.size = 0