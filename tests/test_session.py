# tests/test_session.py
"""
Device/session boundary: single writer, clamped cursor, strategy switch, byte transfer.

Run: pytest -v
"""

from __future__ import annotations

import os

import pytest

from fibnum import session as session_mod
from fibnum.errors import AllocationFailure, BufferTooSmall, ReadFailure, SessionBusy
from fibnum.fibonacci import Strategy
from fibnum.limbs import unpack_limbs
from fibnum.render import render_decimal
from fibnum.session import FibonacciDevice, Request, serve


@pytest.fixture
def device():
    return FibonacciDevice(max_index=1000)


def test_single_writer(device):
    first = device.open()
    with pytest.raises(SessionBusy):
        device.open()
    first.close()
    with device.open() as again:
        assert again.tell() == 0


@pytest.mark.parametrize("offset,whence,expected", [
    (93, os.SEEK_SET, 93),
    (-5, os.SEEK_SET, 0),
    (5000, os.SEEK_SET, 1000),
    (10, os.SEEK_END, 990),
    (-10, os.SEEK_END, 1000),
    (2000, os.SEEK_END, 0),
])
def test_seek_is_clamped(device, offset, whence, expected):
    with device.open() as s:
        assert s.seek(offset, whence) == expected
        assert s.tell() == expected


def test_seek_relative(device):
    with device.open() as s:
        s.seek(10)
        assert s.seek(5, os.SEEK_CUR) == 15
        assert s.seek(-100, os.SEEK_CUR) == 0


def test_seek_bad_whence(device):
    with device.open() as s, pytest.raises(ValueError):
        s.seek(1, 7)


def test_read_transfers_packed_limbs(device):
    with device.open() as s:
        s.seek(94)
        data = s.read(64)
        assert len(data) == 16
        assert render_decimal(unpack_limbs(data)) == "19740274219868223167"
        assert s.last.index == 94
        assert s.last.elapsed_ns >= 0


def test_read_into_small_buffer_fails(device):
    with device.open() as s:
        s.seek(94)
        with pytest.raises(BufferTooSmall):
            s.read(8)
        assert s.read(16)


def test_write_switches_strategy_and_reports_last_duration(device):
    with device.open() as s:
        assert s.write("iterative") == 0
        assert s.strategy is Strategy.ITERATIVE
        resp = s.request(300)
        assert resp.strategy is Strategy.ITERATIVE
        assert s.write(3) == resp.elapsed_ns
        assert s.request(300).limbs == resp.limbs
        assert s.last.strategy is Strategy.KARATSUBA


def test_sessions_do_not_share_strategy(device):
    with device.open() as s:
        s.write("karatsuba")
    with device.open() as s:
        assert s.strategy is Strategy.FAST_DOUBLING


def test_closed_session_refuses_io(device):
    s = device.open()
    s.close()
    s.close()
    with pytest.raises(ValueError):
        s.read(100)


def test_core_failure_becomes_read_failure(monkeypatch):
    def _fail(k, strategy):
        raise AllocationFailure("no memory")

    monkeypatch.setattr(session_mod, "compute_fibonacci", _fail)
    with pytest.raises(ReadFailure) as info:
        serve(Request(index=10))
    assert isinstance(info.value.__cause__, AllocationFailure)


def test_response_values():
    resp = serve(Request(index=100, strategy=Strategy.KARATSUBA))
    assert resp.decimal == "354224848179261915075"
    assert resp.size == len(resp.payload) == 16
