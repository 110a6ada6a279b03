# tests/test_limbs.py
"""
Kernel tests: allocation, add/subtract, shifts, constants, swap, transfer.

Run: pytest -v
"""

from __future__ import annotations

import random
import sys

import pytest

from fibnum.errors import AllocationFailure, CapacityExceeded, PreconditionViolation
from fibnum.limbs import (
    LIMB_MASK,
    add,
    add_constant,
    allocate,
    from_int,
    left_shift,
    limbs_to_int,
    pack_limbs,
    subtract,
    subtract_constant,
    swap,
    unpack_limbs,
)

M = LIMB_MASK

# ---------- helpers -----------------------------------------------------------


def _random_value(rng: random.Random, limbs: int) -> int:
    if limbs == 0:
        return 0
    return rng.getrandbits(64 * limbs) | (1 << (64 * limbs - 1))


def _assert_normalized(buf) -> None:
    assert 1 <= buf.length <= buf.capacity
    if buf.length > 1:
        assert buf.limbs[buf.offset + buf.length - 1] != 0


# ---------- allocation --------------------------------------------------------


def test_allocate_is_zero_with_one_limb():
    buf = allocate(5)
    assert buf.length == 1
    assert buf.capacity == 5
    assert buf.is_zero()
    assert buf.limbs == [0] * 5


@pytest.mark.parametrize("capacity", [0, -3])
def test_allocate_rejects_empty_capacity(capacity):
    with pytest.raises(AllocationFailure):
        allocate(capacity)


def test_allocate_reports_unobtainable_memory():
    with pytest.raises(AllocationFailure):
        allocate(sys.maxsize * 2)


def test_view_outside_capacity_is_refused():
    buf = allocate(4)
    with pytest.raises(CapacityExceeded):
        buf.view(2, 1, 3)


# ---------- add / subtract ----------------------------------------------------


ADD_CASES = [
    (0, 0, [0]),
    (1, 2, [3]),
    (M, 1, [0, 1]),
    ((M << 64) | M, 1, [0, 0, 1]),
    (1 << 64, M, [M, 1]),
]


@pytest.mark.parametrize("x,y,expected", ADD_CASES, ids=[f"{x}+{y}" for x, y, _ in ADD_CASES])
def test_add_carries_into_new_limb(x, y, expected):
    out = allocate(4)
    add(out, from_int(x), from_int(y))
    assert list(out.digits()) == expected


def test_add_in_place_on_either_operand():
    a = from_int(M, 3)
    b = from_int(5, 3)
    add(a, a, b)
    assert a.to_int() == M + 5
    add(b, a, b)
    assert b.to_int() == M + 10


def test_add_carry_without_room_is_checked():
    a = from_int(M, 1)
    with pytest.raises(CapacityExceeded):
        add(a, a, from_int(1))


def test_add_operand_longer_than_output_is_checked():
    out = allocate(1)
    with pytest.raises(CapacityExceeded):
        add(out, from_int(1 << 64), from_int(1))


def test_subtract_then_add_round_trip_limb_for_limb():
    rng = random.Random(20240807)
    for _ in range(200):
        xl = rng.randint(1, 12)
        yl = rng.randint(0, xl)
        x = _random_value(rng, xl)
        y = rng.randrange(0, x + 1) if yl == xl else _random_value(rng, yl)
        bx, by = from_int(x, 14), from_int(y, 14)
        diff = allocate(14)
        subtract(diff, bx, by)
        _assert_normalized(diff)
        assert diff.to_int() == x - y
        back = allocate(14)
        add(back, diff, by)
        assert back.digits() == bx.digits()


def test_subtract_trims_leading_zero_limbs():
    out = allocate(3)
    subtract(out, from_int((1 << 128) + 7), from_int(1 << 128))
    assert out.digits() == (7,)


def test_subtract_to_zero():
    x = from_int(123456789 << 64)
    out = allocate(2)
    subtract(out, x, x)
    assert out.is_zero()


@pytest.mark.parametrize("x,y", [(1, 2), (1 << 64, (1 << 64) + 1), (5, 1 << 64)])
def test_subtract_underflow_is_checked(x, y):
    with pytest.raises(PreconditionViolation):
        subtract(allocate(3), from_int(x), from_int(y))


# ---------- shift & constants -------------------------------------------------


def test_left_shift_grows_on_carry():
    buf = from_int(1 << 63, 2)
    left_shift(buf)
    assert buf.digits() == (0, 1)


def test_left_shift_carry_without_room_is_checked():
    buf = from_int(1 << 63, 1)
    with pytest.raises(CapacityExceeded):
        left_shift(buf)


def test_left_shift_then_halve_by_subtraction_recovers_value():
    rng = random.Random(7)
    for limbs in (1, 2, 5, 9):
        value = _random_value(rng, limbs)
        original = from_int(value, limbs + 1)
        doubled = from_int(value, limbs + 1)
        left_shift(doubled)
        assert doubled.to_int() == 2 * value
        half = allocate(limbs + 1)
        subtract(half, doubled, original)
        assert half.digits() == original.digits()


def test_add_constant_ripples_through_limbs():
    buf = from_int((M << 64) | M, 3)
    add_constant(buf, 2)
    assert buf.digits() == (1, 0, 1)


def test_subtract_constant_borrows_and_trims():
    buf = from_int((1 << 64) + 1, 2)
    subtract_constant(buf, 2)
    assert buf.digits() == (M,)


@pytest.mark.parametrize("value,c", [(1, 2), (0, 1)])
def test_subtract_constant_larger_than_value_is_checked(value, c):
    with pytest.raises(PreconditionViolation):
        subtract_constant(from_int(value), c)


@pytest.mark.parametrize("c", [-1, 1 << 64])
def test_constants_must_fit_one_limb(c):
    with pytest.raises(PreconditionViolation):
        add_constant(from_int(5, 2), c)


# ---------- swap & transfer ---------------------------------------------------


def test_swap_exchanges_storage_without_copying():
    a = from_int(3, 2)
    b = from_int(1 << 64, 4)
    a_store, b_store = a.limbs, b.limbs
    swap(a, b)
    assert a.limbs is b_store and b.limbs is a_store
    assert (a.to_int(), a.capacity) == (1 << 64, 4)
    assert (b.to_int(), b.capacity) == (3, 2)


def test_pack_and_unpack_limbs():
    limbs = (1, M, 42)
    data = pack_limbs(limbs)
    assert len(data) == 24
    assert data[:8] == b"\x01" + b"\x00" * 7
    assert unpack_limbs(data) == limbs
    assert limbs_to_int(limbs) == 1 + (M << 64) + (42 << 128)


def test_unpack_rejects_partial_limb():
    with pytest.raises(ValueError):
        unpack_limbs(b"\x00" * 9)
