# src/fibnum/limbs.py
"""
Fixed-capacity limb buffers and the in-place arithmetic kernel.

A number is stored base 2**64, least-significant limb first. A LimbBuffer is
a window onto a Python list: (limbs, offset, length, capacity). Several
windows may share one list; the recursive multiplier carves its scratch
space out of a single workspace list this way.

Invariants:
  - 1 <= length <= capacity
  - limbs[offset + length - 1] != 0 unless length == 1 (the value zero)
  - limbs past `length` are scratch and never read as value bits
"""

from __future__ import annotations

import struct
from collections.abc import Iterable, Sequence

from fibnum.errors import AllocationFailure, CapacityExceeded, PreconditionViolation

LIMB_BITS = 64
LIMB_BYTES = 8
LIMB_BASE = 1 << LIMB_BITS
LIMB_MASK = LIMB_BASE - 1
_TOP_SHIFT = LIMB_BITS - 1


class LimbBuffer:
    __slots__ = ("limbs", "offset", "length", "capacity")

    def __init__(self, limbs: list[int], offset: int = 0, length: int = 1, capacity: int | None = None):
        self.limbs = limbs
        self.offset = offset
        self.length = length
        self.capacity = (len(limbs) - offset) if capacity is None else capacity

    def __repr__(self) -> str:
        return f"<LimbBuffer len={self.length} cap={self.capacity} off={self.offset}>"

    # --- views ---------------------------------------------------------------

    def view(self, start: int, length: int = 1, capacity: int | None = None) -> LimbBuffer:
        """Window onto the same storage, `start` limbs past this buffer's offset."""
        if capacity is None:
            capacity = self.capacity - start
        if start < 0 or capacity < 1 or start + capacity > self.capacity:
            raise CapacityExceeded(
                f"view [{start}, {start + capacity}) outside buffer of capacity {self.capacity}"
            )
        return LimbBuffer(self.limbs, self.offset + start, length, capacity)

    def overlaps(self, other: LimbBuffer, *, extent: int, other_extent: int) -> bool:
        if self.limbs is not other.limbs:
            return False
        a0, b0 = self.offset, other.offset
        return a0 < b0 + other_extent and b0 < a0 + extent

    # --- value helpers -------------------------------------------------------

    def normalize(self) -> None:
        """Drop zero limbs from the top (length never goes below 1)."""
        limbs, o = self.limbs, self.offset
        n = self.length
        while n > 1 and limbs[o + n - 1] == 0:
            n -= 1
        self.length = n

    def set_small(self, value: int) -> None:
        if not 0 <= value <= LIMB_MASK:
            raise PreconditionViolation(f"{value} does not fit in one limb")
        self.limbs[self.offset] = value
        self.length = 1

    def is_zero(self) -> bool:
        return self.length == 1 and self.limbs[self.offset] == 0

    def digits(self) -> tuple[int, ...]:
        """Active limbs, least significant first."""
        o = self.offset
        return tuple(self.limbs[o:o + self.length])

    def to_int(self) -> int:
        value = 0
        limbs, o = self.limbs, self.offset
        for i in range(self.length - 1, -1, -1):
            value = (value << LIMB_BITS) | limbs[o + i]
        return value


# --- allocation ------------------------------------------------------------


def allocate(capacity: int) -> LimbBuffer:
    """Zeroed buffer holding the value 0 (length 1)."""
    if capacity < 1:
        raise AllocationFailure(f"cannot allocate a buffer of {capacity} limbs")
    try:
        storage = [0] * capacity
    except (MemoryError, OverflowError):
        raise AllocationFailure(f"out of memory allocating {capacity} limbs") from None
    return LimbBuffer(storage, 0, 1, capacity)


def from_int(value: int, capacity: int | None = None) -> LimbBuffer:
    if value < 0:
        raise PreconditionViolation("limb buffers hold unsigned values only")
    parts = []
    while True:
        parts.append(value & LIMB_MASK)
        value >>= LIMB_BITS
        if not value:
            break
    if capacity is None:
        capacity = len(parts)
    if capacity < len(parts):
        raise CapacityExceeded(f"{len(parts)} limbs needed, capacity is {capacity}")
    buf = allocate(capacity)
    buf.limbs[:len(parts)] = parts
    buf.length = len(parts)
    return buf


def swap(a: LimbBuffer, b: LimbBuffer) -> None:
    """Exchange the complete state of two buffers in O(1); no limb is copied."""
    a.limbs, b.limbs = b.limbs, a.limbs
    a.offset, b.offset = b.offset, a.offset
    a.length, b.length = b.length, a.length
    a.capacity, b.capacity = b.capacity, a.capacity


# --- kernel ----------------------------------------------------------------


def add(output: LimbBuffer, x: LimbBuffer, y: LimbBuffer) -> None:
    """output := x + y. `output` may be the same buffer as x or y."""
    if x.length < y.length:
        x, y = y, x
    n, m = x.length, y.length
    if n > output.capacity:
        raise CapacityExceeded(f"sum needs {n} limbs, output capacity is {output.capacity}")

    out, oo = output.limbs, output.offset
    xs, xo = x.limbs, x.offset
    ys, yo = y.limbs, y.offset
    carry = 0
    for i in range(m):
        s = xs[xo + i] + ys[yo + i] + carry
        out[oo + i] = s & LIMB_MASK
        carry = s >> LIMB_BITS
    for i in range(m, n):
        s = xs[xo + i] + carry
        out[oo + i] = s & LIMB_MASK
        carry = s >> LIMB_BITS

    output.length = n
    if carry:
        if n >= output.capacity:
            raise CapacityExceeded(f"carry out of limb {n - 1} with capacity {output.capacity}")
        out[oo + n] = carry
        output.length = n + 1


def subtract(output: LimbBuffer, x: LimbBuffer, y: LimbBuffer) -> None:
    """output := x - y, requires x >= y. `output` may be the same buffer as x or y."""
    n, m = x.length, y.length
    if m > n:
        raise PreconditionViolation("subtract: subtrahend is longer than minuend")
    if n > output.capacity:
        raise CapacityExceeded(f"difference needs {n} limbs, output capacity is {output.capacity}")

    out, oo = output.limbs, output.offset
    xs, xo = x.limbs, x.offset
    ys, yo = y.limbs, y.offset
    borrow = 0
    for i in range(m):
        d = xs[xo + i] - ys[yo + i] - borrow
        if d < 0:
            d += LIMB_BASE
            borrow = 1
        else:
            borrow = 0
        out[oo + i] = d
    for i in range(m, n):
        d = xs[xo + i] - borrow
        if d < 0:
            d += LIMB_BASE
            borrow = 1
        else:
            borrow = 0
        out[oo + i] = d

    if borrow:
        raise PreconditionViolation("subtract: minuend is smaller than subtrahend")
    output.length = n
    output.normalize()


def left_shift(output: LimbBuffer) -> None:
    """Double the value in place."""
    limbs, o = output.limbs, output.offset
    n = output.length
    carry = 0
    for i in range(n):
        v = limbs[o + i]
        limbs[o + i] = ((v << 1) & LIMB_MASK) | carry
        carry = v >> _TOP_SHIFT
    if carry:
        if n >= output.capacity:
            raise CapacityExceeded(f"left shift carries out of capacity {output.capacity}")
        limbs[o + n] = carry
        output.length = n + 1


def _check_constant(c: int) -> None:
    if not 0 <= c <= LIMB_MASK:
        raise PreconditionViolation(f"constant {c} is not a single limb")


def add_constant(output: LimbBuffer, c: int) -> None:
    _check_constant(c)
    limbs, o = output.limbs, output.offset
    n = output.length
    carry = c
    i = 0
    while carry and i < n:
        s = limbs[o + i] + carry
        limbs[o + i] = s & LIMB_MASK
        carry = s >> LIMB_BITS
        i += 1
    if carry:
        if n >= output.capacity:
            raise CapacityExceeded(f"carry out of limb {n - 1} with capacity {output.capacity}")
        limbs[o + n] = carry
        output.length = n + 1


def subtract_constant(output: LimbBuffer, c: int) -> None:
    _check_constant(c)
    limbs, o = output.limbs, output.offset
    if output.length == 1 and limbs[o] < c:
        raise PreconditionViolation(f"subtract_constant: {c} exceeds value {limbs[o]}")
    borrow = c
    i = 0
    while borrow:
        d = limbs[o + i] - borrow
        if d < 0:
            limbs[o + i] = d + LIMB_BASE
            borrow = 1
        else:
            limbs[o + i] = d
            borrow = 0
        i += 1
    output.normalize()


# --- boundary transfer -----------------------------------------------------


def pack_limbs(limbs: Sequence[int]) -> bytes:
    """Little-endian unsigned 64-bit limbs; limb count is len(data) // 8."""
    return struct.pack(f"<{len(limbs)}Q", *limbs)


def unpack_limbs(data: bytes | bytearray | memoryview) -> tuple[int, ...]:
    if len(data) % LIMB_BYTES:
        raise ValueError(f"payload of {len(data)} bytes is not a whole number of limbs")
    return struct.unpack(f"<{len(data) // LIMB_BYTES}Q", data)


def limbs_to_int(limbs: Iterable[int]) -> int:
    value = 0
    for shift, limb in enumerate(limbs):
        value |= limb << (shift * LIMB_BITS)
    return value
