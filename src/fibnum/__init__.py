from __future__ import annotations

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _pkg_version

# Version
try:
    __version__ = _pkg_version("fibnum")
except PackageNotFoundError:
    __version__ = "0+unknown"

# Public API re-exports
from .errors import (
    AllocationFailure,
    BufferTooSmall,
    CapacityExceeded,
    FibnumError,
    PreconditionViolation,
    ReadFailure,
    SessionBusy,
)
from .fibonacci import Strategy, compute_fibonacci, estimate_limbs
from .render import render_decimal
from .session import FibonacciDevice, Request, Response

__all__ = [
    "AllocationFailure",
    "BufferTooSmall",
    "CapacityExceeded",
    "FibnumError",
    "FibonacciDevice",
    "PreconditionViolation",
    "ReadFailure",
    "Request",
    "Response",
    "SessionBusy",
    "Strategy",
    "__version__",
    "compute_fibonacci",
    "estimate_limbs",
    "render_decimal",
]
