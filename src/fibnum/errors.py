# src/fibnum/errors.py
from __future__ import annotations


class FibnumError(Exception):
    pass


class AllocationFailure(FibnumError):
    """A limb buffer could not be obtained; the call is abandoned."""


class CapacityExceeded(FibnumError):
    """A result (or a carry) does not fit the capacity reserved for it."""


class PreconditionViolation(FibnumError):
    """An operation was called with operands outside its contract (e.g. x < y in subtract)."""


class SessionBusy(FibnumError):
    pass


class BufferTooSmall(FibnumError):
    pass


class ReadFailure(FibnumError):
    pass


class UserInputError(Exception):
    pass
