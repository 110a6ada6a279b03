# src/fibnum/render.py
from __future__ import annotations

from collections.abc import Sequence

from fibnum.limbs import LIMB_BITS

# largest power of ten below 2**64
DECIMAL_BASE = 10 ** 19
DECIMAL_GROUP_DIGITS = 19


def decimal_groups(limbs: Sequence[int]) -> list[int]:
    """
    Base-10**19 digits of a limb sequence, least significant group first.

    Each pass long-divides the remaining limbs by 10**19 from the top limb
    down, carrying a remainder below 2**128, then drops zero top limbs.
    The input is left untouched.
    """
    work = list(limbs)
    n = len(work)
    if n == 0:
        raise ValueError("empty limb sequence")
    while n > 1 and work[n - 1] == 0:
        n -= 1

    groups: list[int] = []
    while True:
        rem = 0
        for i in range(n - 1, -1, -1):
            work[i], rem = divmod((rem << LIMB_BITS) | work[i], DECIMAL_BASE)
        groups.append(rem)
        while n > 1 and work[n - 1] == 0:
            n -= 1
        if n == 1 and work[0] == 0:
            return groups


def render_decimal(limbs: Sequence[int], group_sep: str = "") -> str:
    """Decimal text of a limb sequence; "0" for zero, no leading zeros."""
    groups = decimal_groups(limbs)
    parts = [str(groups[-1])]
    parts.extend(f"{g:0{DECIMAL_GROUP_DIGITS}d}" for g in reversed(groups[:-1]))
    return group_sep.join(parts)
