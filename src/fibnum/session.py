# src/fibnum/session.py
"""
Device-style access to the Fibonacci core.

One FibonacciDevice admits a single open Session at a time. A session
keeps a clamped cursor (the index to compute next), its own strategy and
the duration of its last read; nothing is shared between sessions except
the open/closed lock.
"""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass

from fibnum.errors import BufferTooSmall, FibnumError, ReadFailure, SessionBusy
from fibnum.fibonacci import Strategy, compute_fibonacci
from fibnum.limbs import LIMB_BYTES, pack_limbs
from fibnum.render import render_decimal

MAX_INDEX = 500_000


@dataclass(frozen=True)
class Request:
    index: int
    strategy: Strategy = Strategy.FAST_DOUBLING


@dataclass(frozen=True)
class Response:
    index: int
    strategy: Strategy
    limbs: tuple[int, ...]
    elapsed_ns: int

    @property
    def payload(self) -> bytes:
        return pack_limbs(self.limbs)

    @property
    def size(self) -> int:
        return len(self.limbs) * LIMB_BYTES

    @property
    def decimal(self) -> str:
        return render_decimal(self.limbs)


def serve(request: Request) -> Response:
    """Compute one request and time it; core failures surface as ReadFailure."""
    start = time.perf_counter_ns()
    try:
        limbs = compute_fibonacci(request.index, request.strategy)
    except FibnumError as e:
        raise ReadFailure(f"F({request.index}) failed: {e}") from e
    return Response(
        index=request.index,
        strategy=request.strategy,
        limbs=limbs,
        elapsed_ns=time.perf_counter_ns() - start,
    )


class FibonacciDevice:
    def __init__(self, max_index: int = MAX_INDEX, strategy: Strategy | str = Strategy.FAST_DOUBLING):
        if max_index < 0:
            raise ValueError("max_index must be non-negative")
        self.max_index = int(max_index)
        self.default_strategy = Strategy.parse(strategy)
        self._lock = threading.Lock()

    def open(self) -> Session:
        if not self._lock.acquire(blocking=False):
            raise SessionBusy("fibonacci device is in use")
        return Session(self)

    def _release(self) -> None:
        self._lock.release()


class Session:
    def __init__(self, device: FibonacciDevice):
        self._device = device
        self._pos = 0
        self.strategy = device.default_strategy
        self.last: Response | None = None
        self.closed = False

    def __enter__(self) -> Session:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed session")

    @property
    def max_index(self) -> int:
        return self._device.max_index

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._device._release()

    def tell(self) -> int:
        self._check_open()
        return self._pos

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move the cursor; the result is clamped to [0, max_index]."""
        self._check_open()
        if whence == os.SEEK_SET:
            pos = offset
        elif whence == os.SEEK_CUR:
            pos = self._pos + offset
        elif whence == os.SEEK_END:
            pos = self.max_index - offset
        else:
            raise ValueError(f"invalid whence ({whence})")
        self._pos = min(max(int(pos), 0), self.max_index)
        return self._pos

    def write(self, strategy: Strategy | str | int) -> int:
        """Switch strategy; returns the elapsed ns of this session's last read (0 if none)."""
        self._check_open()
        self.strategy = Strategy.parse(strategy)
        return self.last.elapsed_ns if self.last else 0

    def request(self, index: int | None = None) -> Response:
        self._check_open()
        if index is not None:
            self.seek(index)
        self.last = serve(Request(index=self._pos, strategy=self.strategy))
        return self.last

    def read(self, size: int) -> bytes:
        """Packed limbs of F(position); `size` is the caller's buffer size in bytes."""
        resp = self.request()
        if size < resp.size:
            raise BufferTooSmall(f"buffer of {size} bytes, F({resp.index}) needs {resp.size}")
        return resp.payload
