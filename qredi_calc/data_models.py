"""Data models for the Qredi simulator.

This module defines the enumerations and dataclasses used by the simulator:
the rate periods and rate kinds understood by the normalizer, the raw rate
and loan inputs, and the result objects handed to the formatting and sharing
layers. Inputs are kept raw (as received from the extraction service) so that
validation happens in one place, in the order the calculators expect.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


class Period(Enum):
    """A period a rate can be quoted or compounded in.

    Member values are the keys used by the extraction service. English names
    are accepted as aliases (see ``PERIOD_ALIASES``).
    """

    DAILY = "diaria"
    WEEKLY = "semanal"
    BIWEEKLY = "quincenal"
    MONTHLY = "mensual"
    BIMONTHLY = "bimestral"
    QUARTERLY = "trimestral"
    FOUR_MONTHLY = "cuatrimestral"
    SEMIANNUAL = "semestral"
    ANNUAL = "anual"


PERIODS_PER_YEAR: Dict[Period, int] = {
    Period.DAILY: 365,
    Period.WEEKLY: 52,
    Period.BIWEEKLY: 24,
    Period.MONTHLY: 12,
    Period.BIMONTHLY: 6,
    Period.QUARTERLY: 4,
    Period.FOUR_MONTHLY: 3,
    Period.SEMIANNUAL: 2,
    Period.ANNUAL: 1,
}

PERIOD_ALIASES: Dict[str, Period] = {
    "daily": Period.DAILY,
    "weekly": Period.WEEKLY,
    "biweekly": Period.BIWEEKLY,
    "monthly": Period.MONTHLY,
    "bimonthly": Period.BIMONTHLY,
    "quarterly": Period.QUARTERLY,
    "four-monthly": Period.FOUR_MONTHLY,
    "semiannual": Period.SEMIANNUAL,
    "annual": Period.ANNUAL,
}


class RateKind(Enum):
    NOMINAL = "nominal"
    EFFECTIVE = "effective"


RATE_KIND_ALIASES: Dict[str, RateKind] = {
    "nominal": RateKind.NOMINAL,
    "effective": RateKind.EFFECTIVE,
    "efectiva": RateKind.EFFECTIVE,
}


@dataclass(frozen=True)
class RateSpec:
    """A quoted interest rate, as supplied by the caller.

    Attributes
    ----------
    value: Any
        Rate magnitude in percentage points (``2`` means 2 %). Anything that
        parses as a finite number is accepted.
    kind: str
        ``"nominal"`` or ``"effective"`` (``"efectiva"`` is accepted too).
    base_period: str
        The period the rate is quoted in, e.g. ``"mensual"`` or ``"monthly"``.
    compounding_period: Optional[str]
        Compounding period for nominal rates. Defaults to ``base_period``.
    """

    value: Any
    kind: str
    base_period: str
    compounding_period: Optional[str] = None

    @classmethod
    def from_extraction(cls, data: Dict[str, Any]) -> "RateSpec":
        """Build a spec from the keys returned by the extraction service."""
        return cls(
            value=data.get("valor_tasa"),
            kind=data.get("tipo_tasa") or "",
            base_period=data.get("periodo") or "",
            compounding_period=data.get("capitalizacion") or None,
        )


@dataclass(frozen=True)
class LoanTerms:
    """Inputs of the interest calculators.

    ``term_days`` is the loan duration in days and
    ``annual_effective_rate_percent`` the TEA (``42.58`` means 42.58 %).
    """

    principal: Any
    term_days: Any
    annual_effective_rate_percent: Any

    @classmethod
    def from_extraction(cls, data: Dict[str, Any], tea: Decimal) -> "LoanTerms":
        return cls(
            principal=data.get("monto"),
            term_days=data.get("plazo_unidad_de_tiempo"),
            annual_effective_rate_percent=tea,
        )


@dataclass(frozen=True)
class AmortizationResult:
    """Total interest produced by one of the interest strategies.

    ``principal`` and ``term_days`` are the validated loan terms the interest
    was computed from. ``months`` and ``installment`` are only set by the
    fixed-installment strategy.
    """

    total_interest: Decimal
    strategy: str
    principal: Decimal
    term_days: Decimal
    months: Optional[int] = None
    installment: Optional[Decimal] = None


@dataclass
class ScheduleEntry:
    """One month of a fixed-installment amortization schedule."""

    period: int
    starting_balance: Decimal
    payment: Decimal
    principal_payment: Decimal
    interest_payment: Decimal
    ending_balance: Decimal


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of simulating one credit description end to end."""

    principal: Decimal
    term_days: Decimal
    annual_effective_rate_percent: Decimal
    total_interest: Decimal
    strategy: str

    @property
    def total_cost(self) -> Decimal:
        return self.principal + self.total_interest


@dataclass(frozen=True)
class ExtractionReply:
    """Reply of the text-understanding service.

    Exactly one of ``terms`` and ``follow_up`` is set: ``terms`` holds the
    structured loan terms, ``follow_up`` the question to ask the user when
    the description was incomplete.
    """

    terms: Optional[Dict[str, Any]] = None
    follow_up: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.terms is not None


@dataclass
class SharedRecord:
    """A simulated credit as carried inside a share link."""

    original_message: str
    raw_api_response: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "originalMessage": self.original_message,
            "rawApiResponse": self.raw_api_response,
        }
