#!/usr/bin/env python3
"""
Custom exceptions for the lead scoring and price benchmarking services.

"No data yet" is a normal state for this core: missing tradies, quotes and
thin benchmark samples are reported with None / "Unknown" results rather
than exceptions. The NotFound classes below exist for callers that prefer
to translate those sentinels into errors at their own boundary.
"""

from typing import Any


class ServiceException(Exception):
    """Base exception for service layer errors."""
    pass


class TradieNotFoundException(ServiceException):
    """Raised by callers when a tradie profile is not found."""
    pass


class QuoteNotFoundException(ServiceException):
    """Raised by callers when a quote is not found."""
    pass


class InvalidEnumValueError(ServiceException, ValueError):
    """Raised when a status or rating string does not name a known state."""

    def __init__(self, enum_name: str, value: Any):
        self.enum_name = enum_name
        self.value = value
        super().__init__(f"Unknown {enum_name} value: {value!r}")


class OperationCancelledError(ServiceException):
    """Raised when the caller's stop event is set at an I/O boundary.

    Propagates out of the unit of work so the transaction rolls back.
    """
    pass
