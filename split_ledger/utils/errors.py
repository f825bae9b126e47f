"""
Error types raised by the balance engine.

ValidationError is caller-recoverable input (a split that does not add up, a
settlement paying oneself). InvariantViolation means the engine or the data
handed to it is broken and must never be coerced into a result.
"""

import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class LedgerError(Exception):
    """Base class for all engine errors."""


class ValidationError(LedgerError, ValueError):
    """
    Rejected input, reported with the mismatch so the caller can act on it.

    Attributes:
        expected: The value the input had to produce (e.g. the expense total)
        actual: The value it actually produced (e.g. the sum of the splits)
    """

    def __init__(self, message: str, expected: Optional[Any] = None, actual: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.expected = expected
        self.actual = actual


class InvariantViolation(LedgerError, AssertionError):
    """A postcondition of the engine failed; indicates a bug or corrupted history."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        logger.critical(f"Invariant violated: {message}")
