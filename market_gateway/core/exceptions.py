"""
Error taxonomy for Market Gateway Service.

Absence of data (no tick, no cached order book, no profile entry) is never an
exception: it is returned as ``None`` or omitted from collections.
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Error codes carried in API error bodies."""
    INVALID_INPUT = "InvalidInput"
    NOT_FOUND = "NotFound"
    INTERNAL_ERROR = "InternalError"


class GatewayError(Exception):
    """Base exception for gateway errors."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class InvalidInputError(GatewayError):
    """Raised when a request cannot be served as asked (bad period, unknown pair)."""

    code = ErrorCode.INVALID_INPUT
    status_code = 400


class UpstreamFailureError(GatewayError):
    """Raised when a backing store or service fails or returns undecodable data."""

    def __init__(self, message: str, source: str, key: Optional[str] = None):
        self.source = source
        self.key = key
        super().__init__(message)


class BackendInconsistencyError(GatewayError):
    """Raised when a candle window expected to hold one bucket holds several."""

    def __init__(self, message: str, asset_pair_id: str, count: int):
        self.asset_pair_id = asset_pair_id
        self.count = count
        super().__init__(message)
