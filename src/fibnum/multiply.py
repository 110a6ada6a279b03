# src/fibnum/multiply.py
"""
Limb multiplication: schoolbook O(n*m) and a recursive Karatsuba split.

Both write into a caller-owned output buffer and use a caller-owned
workspace; nothing is allocated here.

Workspace layout of one recursive step (n = max operand length,
m = ceil(n / 2)):

    [0, m+1)          x_lo + x_hi
    [m+1, 2m+2)       y_lo + y_hi
    [2m+2, 4m+4)      middle product
    [4m+4, ...)       workspace handed to the middle product's own call

The low and high products are written straight into the output and run
before any of the above is live, so they reuse the workspace from offset 0.
"""

from __future__ import annotations

from fibnum.errors import CapacityExceeded, PreconditionViolation
from fibnum.limbs import LIMB_BITS, LIMB_MASK, LimbBuffer, add, subtract

SCHOOLBOOK_LIMIT = 8


def workspace_limbs(n: int) -> int:
    """
    Limbs of workspace recursive_multiply needs for operands of at most n limbs.

    W(n) = 2n                       for n <= SCHOOLBOOK_LIMIT (carry buffer)
    W(n) = 4m + 4 + W(m + 1)        otherwise, m = ceil(n / 2)

    W is non-decreasing, so every nested call fits in what its parent
    leaves over.
    """
    total = 0
    while n > SCHOOLBOOK_LIMIT:
        m = (n + 1) // 2
        total += 4 * m + 4
        n = m + 1
    return total + 2 * max(n, 1)


def _check_output(output: LimbBuffer, x: LimbBuffer, y: LimbBuffer, scratch: LimbBuffer) -> int:
    total = x.length + y.length
    if total > output.capacity:
        raise CapacityExceeded(f"product needs {total} limbs, output capacity is {output.capacity}")
    for operand in (x, y):
        if output.overlaps(operand, extent=output.capacity, other_extent=operand.length):
            raise PreconditionViolation("product output overlaps an operand")
    if output.overlaps(scratch, extent=output.capacity, other_extent=scratch.capacity):
        raise PreconditionViolation("product output overlaps the workspace")
    return total


def schoolbook_multiply(output: LimbBuffer, x: LimbBuffer, y: LimbBuffer, carry: LimbBuffer) -> None:
    """
    output := x * y over every limb pair.

    Each 128-bit partial product is split into halves added at i+j and
    i+j+1; overflow of those additions is counted in `carry` one limb up
    and folded into the output with a single add at the end.
    """
    total = _check_output(output, x, y, carry)
    if total > carry.capacity:
        raise CapacityExceeded(f"carry buffer needs {total} limbs, has {carry.capacity}")

    out, oo = output.limbs, output.offset
    cs, co = carry.limbs, carry.offset
    xs, xo = x.limbs, x.offset
    ys, yo = y.limbs, y.offset
    out[oo:oo + total] = [0] * total
    cs[co:co + total] = [0] * total

    last = total - 2
    for i in range(x.length):
        xi = xs[xo + i]
        for j in range(y.length):
            p = xi * ys[yo + j]
            t = i + j
            s = out[oo + t] + (p & LIMB_MASK)
            cs[co + t + 1] += s >> LIMB_BITS
            out[oo + t] = s & LIMB_MASK

            s = out[oo + t + 1] + (p >> LIMB_BITS)
            # a carry past the top limb is impossible: the product fits in `total` limbs
            if t < last:
                cs[co + t + 2] += s >> LIMB_BITS
            out[oo + t + 1] = s & LIMB_MASK

    output.length = total
    carry.length = total
    carry.normalize()
    add(output, output, carry)
    output.normalize()


def _multiply_single(output: LimbBuffer, x: LimbBuffer, y: LimbBuffer) -> None:
    """output := x * y where y is one limb."""
    total = x.length + 1
    out, oo = output.limbs, output.offset
    xs, xo = x.limbs, x.offset
    d = y.limbs[y.offset]
    acc = 0
    for j in range(x.length):
        p = xs[xo + j] * d + acc
        out[oo + j] = p & LIMB_MASK
        acc = p >> LIMB_BITS
    out[oo + x.length] = acc
    output.length = total
    output.normalize()


def _halves(v: LimbBuffer, m: int) -> tuple[LimbBuffer, LimbBuffer]:
    lo = LimbBuffer(v.limbs, v.offset, m, m)
    lo.normalize()
    hi = LimbBuffer(v.limbs, v.offset + m, v.length - m, v.length - m)
    return lo, hi


def recursive_multiply(output: LimbBuffer, x: LimbBuffer, y: LimbBuffer, workspace: LimbBuffer) -> None:
    """
    output := x * y by divide and conquer.

    result = HH * B**(2m) + (MID - HH - LL) * B**m + LL, with B = 2**64,
    HH = x_hi*y_hi, LL = x_lo*y_lo, MID = (x_lo+x_hi)*(y_lo+y_hi).
    `workspace` must hold workspace_limbs(max(len x, len y)) limbs.
    """
    n = max(x.length, y.length)
    need = workspace_limbs(n)
    if workspace.capacity < need:
        raise CapacityExceeded(f"workspace needs {need} limbs for {n}-limb operands, has {workspace.capacity}")
    total = _check_output(output, x, y, workspace)

    if x.length == 1 or y.length == 1:
        if x.length == 1:
            x, y = y, x
        _multiply_single(output, x, y)
        return

    m = (n + 1) // 2
    if n <= SCHOOLBOOK_LIMIT or min(x.length, y.length) <= m:
        schoolbook_multiply(output, x, y, workspace)
        return

    x_lo, x_hi = _halves(x, m)
    y_lo, y_hi = _halves(y, m)

    # LL into output[0, 2m), HH into output[2m, total)
    low = output.view(0, 1, 2 * m)
    recursive_multiply(low, x_lo, y_lo, workspace)
    high = output.view(2 * m, 1, output.capacity - 2 * m)
    recursive_multiply(high, x_hi, y_hi, workspace)

    out, oo = output.limbs, output.offset
    out[oo + low.length:oo + 2 * m] = [0] * (2 * m - low.length)
    top = 2 * m + high.length
    out[oo + top:oo + total] = [0] * (total - top)

    sum_x = workspace.view(0, 1, m + 1)
    add(sum_x, x_lo, x_hi)
    sum_y = workspace.view(m + 1, 1, m + 1)
    add(sum_y, y_lo, y_hi)
    middle = workspace.view(2 * m + 2, 1, 2 * m + 2)
    recursive_multiply(middle, sum_x, sum_y, workspace.view(4 * m + 4))

    subtract(middle, middle, low)
    subtract(middle, middle, high)

    output.length = total
    shifted = output.view(m, total - m, output.capacity - m)
    add(shifted, shifted, middle)
    output.normalize()
