"""Interest rate normalization.

Converts a quoted rate (nominal or effective, in any of the supported
periods) into the annual effective rate (TEA) used by the interest
calculators. A periodic effective rate ``r`` over ``m`` periods per year
annualizes as:

    TEA = ((1 + r)^m - 1) * 100

Nominal rates go through two steps. The periodic nominal rate is first
scaled to an annual nominal rate, which is then split over the compounding
periods and annualized with the formula above:

    annual_nominal = value / 100 * m_base
    TEA = ((1 + annual_nominal / m_cap)^m_cap - 1) * 100

Collapsing the two steps gives wrong results whenever the base and
compounding periods differ.
"""

from __future__ import annotations

import logging
from decimal import Decimal, getcontext
from typing import Optional

from .data_models import (
    PERIOD_ALIASES,
    PERIODS_PER_YEAR,
    RATE_KIND_ALIASES,
    Period,
    RateKind,
    RateSpec,
)
from .errors import InvalidPeriod, InvalidRateKind, InvalidRateValue, NegativeRate
from .utils import to_decimal

getcontext().prec = 28

logger = logging.getLogger(__name__)

HUNDRED = Decimal(100)


def _period_options() -> list:
    return [p.value for p in Period]


def parse_period(value: Optional[str], field: str = "base_period") -> Period:
    """Return the ``Period`` named by ``value`` (case-insensitive).

    Both the service's keys (``"mensual"``) and English names
    (``"monthly"``) are accepted.
    """
    if isinstance(value, Period):
        return value
    key = str(value or "").strip().lower()
    try:
        return Period(key)
    except ValueError:
        pass
    if key in PERIOD_ALIASES:
        return PERIOD_ALIASES[key]
    raise InvalidPeriod(field, value, _period_options())


def periods_per_year(period, field: str = "base_period") -> int:
    """Number of times ``period`` occurs in a year."""
    return PERIODS_PER_YEAR[parse_period(period, field)]


def parse_rate_kind(value: Optional[str]) -> RateKind:
    if isinstance(value, RateKind):
        return value
    key = str(value or "").strip().lower()
    if key not in RATE_KIND_ALIASES:
        raise InvalidRateKind(
            f'Invalid rate kind: {value!r}. Valid options: "nominal", "effective".'
        )
    return RATE_KIND_ALIASES[key]


def annualize_effective(rate: Decimal, periods: int) -> Decimal:
    """Annualize a periodic effective rate (decimal) into a TEA (percent)."""
    return ((1 + rate) ** periods - 1) * HUNDRED


def normalize(spec: RateSpec) -> Decimal:
    """Return the annual effective rate (percent) equivalent to ``spec``.

    Raises
    ------
    InvalidRateValue
        If the value is not a finite number.
    InvalidPeriod
        If the base or compounding period is unknown.
    InvalidRateKind
        If the kind is neither nominal nor effective.
    NegativeRate
        If the rate is negative.
    """
    try:
        value = to_decimal(spec.value, rate=True)
    except ValueError as exc:
        raise InvalidRateValue(f"Rate value is not a valid number: {spec.value!r}") from exc

    compounding = spec.compounding_period or spec.base_period
    m_base = periods_per_year(spec.base_period, "base_period")
    m_cap = periods_per_year(compounding, "compounding_period")
    kind = parse_rate_kind(spec.kind)

    rate = value / HUNDRED
    if rate < 0:
        raise NegativeRate(f"Rate cannot be negative: {spec.value}")

    if kind is RateKind.EFFECTIVE:
        tea = annualize_effective(rate, m_base)
    else:
        annual_nominal = rate * m_base
        sub_period_rate = annual_nominal / m_cap
        if sub_period_rate < 0:
            raise NegativeRate(f"Rate per compounding period cannot be negative: {sub_period_rate}")
        tea = annualize_effective(sub_period_rate, m_cap)

    logger.debug("Normalized %s to TEA %s", spec, tea)
    return tea
