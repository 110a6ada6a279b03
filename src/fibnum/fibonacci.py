# src/fibnum/fibonacci.py
"""
Fibonacci numbers on limb buffers.

  fib_iterative      O(k) additions; the correctness oracle
  fib_fast_doubling  O(log k) multiplications, schoolbook or recursive

Buffers are sized once per call from k and never grow.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from fibnum.limbs import (
    LimbBuffer,
    add,
    add_constant,
    allocate,
    left_shift,
    subtract,
    subtract_constant,
    swap,
)
from fibnum.multiply import recursive_multiply, schoolbook_multiply, workspace_limbs

# log2(F(k)) ~= 0.6942 * k - 1.16, and 0.6942 / 64 < 7 / 640
GUARD_LIMBS = 2


def estimate_limbs(k: int) -> int:
    """Limbs needed to hold F(k)."""
    return 2 + k * 7 // 640


def working_limbs(k: int) -> int:
    # the multipliers reserve len(x) + len(y) limbs, which may exceed the
    # product's real size by one; squares of F(k/2 + 1) need the slack
    return estimate_limbs(k) + GUARD_LIMBS


class Strategy(Enum):
    ITERATIVE = "iterative"
    FAST_DOUBLING = "fast-doubling"
    KARATSUBA = "karatsuba"

    @classmethod
    def parse(cls, token: str | int | Strategy) -> Strategy:
        """Accept a Strategy, its value, its name, an alias or the device mode number (1/2/3)."""
        if isinstance(token, Strategy):
            return token
        key = str(token).strip().lower().replace("_", "-")
        found = _STRATEGY_ALIASES.get(key)
        if found is None:
            raise ValueError(
                f"unknown strategy {token!r}; choose one of: "
                + ", ".join(s.value for s in cls)
            )
        return found


_STRATEGY_ALIASES: dict[str, Strategy] = {
    "1": Strategy.ITERATIVE,
    "iterative": Strategy.ITERATIVE,
    "iter": Strategy.ITERATIVE,
    "2": Strategy.FAST_DOUBLING,
    "fast-doubling": Strategy.FAST_DOUBLING,
    "fast": Strategy.FAST_DOUBLING,
    "3": Strategy.KARATSUBA,
    "karatsuba": Strategy.KARATSUBA,
    "recursive": Strategy.KARATSUBA,
}


Multiplier = Callable[[LimbBuffer, LimbBuffer, LimbBuffer, LimbBuffer], None]


def _check_index(k: int) -> None:
    if isinstance(k, bool) or not isinstance(k, int):
        raise ValueError(f"index must be an integer, got {type(k).__name__}")
    if k < 0:
        raise ValueError(f"index must be non-negative, got {k}")


def fib_iterative(k: int) -> LimbBuffer:
    _check_index(k)
    capacity = working_limbs(k)
    prev = allocate(capacity)
    cur = allocate(capacity)
    if k == 0:
        return prev
    cur.set_small(1)
    for _ in range(k - 1):
        add(prev, prev, cur)
        swap(prev, cur)
    return cur


def fib_fast_doubling(k: int, *, multiplier: Multiplier = schoolbook_multiply) -> LimbBuffer:
    """
    Walk the bits of k from the top keeping a = F(m), b = F(m+1).

    Per bit (all but the last):
        F(2m)   = 2*(b*b - a*a) - 2*(-1)**m - a*a
        F(2m+1) = a*a + b*b
    then m -> 2m+1 when the bit is set (a += b, swap).
    """
    _check_index(k)
    capacity = working_limbs(k)
    a = allocate(capacity)
    b = allocate(capacity)
    b.set_small(1)
    if k < 2:
        return b if k else a

    aa = allocate(capacity)
    bb = allocate(capacity)
    if multiplier is schoolbook_multiply:
        scratch = allocate(capacity)
    else:
        scratch = allocate(workspace_limbs(capacity))

    bit = 1 << (k.bit_length() - 1)
    while bit > 1:
        multiplier(aa, a, a, scratch)
        multiplier(bb, b, b, scratch)
        subtract(a, bb, aa)
        left_shift(a)
        # (k & (bit << 1)) is the lowest bit of m
        if k & (bit << 1):
            add_constant(a, 2)
        else:
            subtract_constant(a, 2)
        subtract(a, a, aa)
        add(b, aa, bb)
        if k & bit:
            add(a, a, b)
            swap(a, b)
        bit >>= 1

    if k & 1:
        multiplier(aa, a, a, scratch)
        multiplier(bb, b, b, scratch)
        add(a, aa, bb)
    else:
        left_shift(b)
        subtract(b, b, a)
        multiplier(aa, b, a, scratch)
        swap(aa, a)
    return a


def fib_karatsuba(k: int) -> LimbBuffer:
    return fib_fast_doubling(k, multiplier=recursive_multiply)


_ALGORITHMS: dict[Strategy, Callable[[int], LimbBuffer]] = {
    Strategy.ITERATIVE: fib_iterative,
    Strategy.FAST_DOUBLING: fib_fast_doubling,
    Strategy.KARATSUBA: fib_karatsuba,
}


def compute_fibonacci(k: int, strategy: Strategy | str = Strategy.FAST_DOUBLING) -> tuple[int, ...]:
    """F(k) as limbs, least significant first, no leading zero limb."""
    return _ALGORITHMS[Strategy.parse(strategy)](k).digits()
