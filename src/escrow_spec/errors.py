"""Escrow engine error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCategory(IntEnum):
    SUCCESS = 0x00
    VALIDATION = 0x01
    AUTHORIZATION = 0x02
    RESOURCE = 0x03
    STATE = 0x04
    INTERNAL = 0xFF


class ErrorCode(IntEnum):
    # Success
    SUCCESS = 0x0000

    # Validation
    INVALID_FORMAT = 0x0100
    INVALID_PAYLOAD = 0x0101
    INVALID_AMOUNT = 0x0102
    INVALID_RATING = 0x0103
    UNKNOWN_FUNCTION = 0x0104

    # Authorization
    UNAUTHORIZED = 0x0200
    SELF_OPERATION = 0x0201

    # Resource
    INSUFFICIENT_FUNDS = 0x0300
    OVERFLOW = 0x0301

    # State
    NOT_FOUND = 0x0400
    INVALID_STATE = 0x0401
    DISPUTE_WINDOW_EXPIRED = 0x0402
    ALREADY_RATED = 0x0403

    # Internal
    INTERNAL_ERROR = 0xFF00
    UNKNOWN = 0xFFFF

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory(self.value >> 8)


@dataclass(frozen=True)
class EngineError(Exception):
    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__"))
_frozen_setattr = EngineError.__setattr__


def _engine_error_setattr(self: EngineError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


EngineError.__setattr__ = _engine_error_setattr  # type: ignore[method-assign]


def err(code: ErrorCode, message: str) -> EngineError:
    return EngineError(code=code, message=message)
