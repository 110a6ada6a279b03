# tests/test_render.py
from __future__ import annotations

import pytest

from fibnum.limbs import LIMB_MASK, from_int
from fibnum.render import decimal_groups, render_decimal

CASES = [
    ((0,), "0"),
    ((55,), "55"),
    ((LIMB_MASK,), "18446744073709551615"),
    ((0, 1), "18446744073709551616"),
    (from_int(10 ** 19).digits(), "1" + "0" * 19),
    (from_int(10 ** 38 + 5).digits(), "1" + "0" * 37 + "5"),
]


@pytest.mark.parametrize("limbs,expected", CASES,
                         ids=["zero", "small", "limb-max", "two-limbs", "1e19", "1e38+5"])
def test_render_decimal(limbs, expected):
    assert render_decimal(limbs) == expected


def test_render_matches_python_for_wide_values():
    for bits in (64, 127, 128, 640, 3000):
        value = (1 << bits) - 3
        assert render_decimal(from_int(value).digits()) == str(value)


def test_groups_are_zero_padded_except_the_top():
    value = 7 * 10 ** 38 + 42
    groups = decimal_groups(from_int(value).digits())
    assert groups == [42, 0, 7]
    assert render_decimal(from_int(value).digits(), group_sep=" ") == (
        "7 0000000000000000000 0000000000000000042"
    )


def test_input_is_not_modified_and_top_zero_limbs_are_ignored():
    limbs = [5, 3, 0, 0]
    assert render_decimal(limbs) == str(5 + (3 << 64))
    assert limbs == [5, 3, 0, 0]


def test_empty_sequence_is_rejected():
    with pytest.raises(ValueError):
        render_decimal(())
