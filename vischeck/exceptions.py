"""Exception classes raised by vischeck.

Argument errors raise the built-in ``ValueError``.  Everything specific
to the visual-check lifecycle derives from ``VisCheckError`` so callers
can catch the whole family at once.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vischeck.models.session import TestResults


class VisCheckError(Exception):
    """Base exception class for all vischeck errors."""

    pass


class InvalidStateError(VisCheckError, RuntimeError):
    """Raised when an operation is invoked in the wrong lifecycle state."""

    pass


class ServiceError(VisCheckError):
    """Raised when communication with the comparison service fails."""

    pass


class OutOfBoundsError(VisCheckError):
    """Raised when a location or region falls outside a screenshot."""

    pass


class TestFailedError(VisCheckError, AssertionError):
    """Raised when a test did not pass.

    Attributes:
        results: The results of the test, or ``None`` when raised before
            the test ended (immediate failure reports).
    """

    __test__ = False

    def __init__(self, message: str, results: TestResults | None = None) -> None:
        super().__init__(message)
        self.results = results


class NewTestError(TestFailedError):
    """Raised when a test ended with a new, unapproved baseline."""

    pass
