"""Errors raised by the Qredi simulator.

Every error derives from ``SimulatorError``, itself a ``ValueError``, so the
web and command-line layers can catch a single type and show the message to
the user.
"""

from __future__ import annotations

from typing import Any, Iterable


class SimulatorError(ValueError):
    """Base class of all recoverable simulator errors."""


class InvalidRateValue(SimulatorError):
    pass


class InvalidPeriod(SimulatorError):
    """A period name that is not in the period table."""

    def __init__(self, field: str, value: Any, options: Iterable[str]) -> None:
        self.field = field
        self.value = value
        self.options = list(options)
        super().__init__(
            f"Invalid {field}: {value!r}. Valid options: {', '.join(self.options)}."
        )


class InvalidRateKind(SimulatorError):
    pass


class NegativeRate(SimulatorError):
    pass


class InvalidLoanTerms(SimulatorError):
    """A loan term that is missing, not numeric or out of range."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(message)


class InvalidTerm(SimulatorError):
    pass


class DegenerateAmortization(SimulatorError):
    pass


class UnknownStrategy(SimulatorError):
    pass


class ExtractionError(SimulatorError):
    """The text-understanding service could not be used."""


class ShareEncodeError(SimulatorError):
    pass


class ShareDecodeError(SimulatorError):
    """A share link whose data parameter is missing or malformed."""
