"""Core calculation engine for the Qredi simulator.

This module turns a loan (principal, term in days and TEA) into the total
interest payable. Two strategies are available and the caller picks one by
name:

``amortized``
    Fixed-installment (French system) loan. The TEA is converted to a monthly
    effective rate, the term is rounded up to whole 30-day months and the
    interest is what the equal installments pay on top of the principal.
``continuous``
    Bullet loan. The principal grows at the TEA for ``term_days / 365`` years
    and is repaid at once.

The two are not equivalent; neither is applied implicitly. The module also
builds the month-by-month schedule of the fixed-installment loan and runs the
full pipeline from an extraction reply to a ``SimulationResult``.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation, Overflow, getcontext
from typing import Any, Dict, List, Tuple

from .data_models import AmortizationResult, LoanTerms, RateSpec, ScheduleEntry, SimulationResult
from .errors import DegenerateAmortization, InvalidLoanTerms, InvalidTerm, UnknownStrategy
from .rates import HUNDRED, normalize
from .utils import months_from_days, to_decimal

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = Decimal(365)
MONTHS_PER_YEAR = Decimal(12)
HALF_CENT = Decimal("0.005")
ZERO = Decimal("0")
# One row per month; longer schedules are refused rather than built.
MAX_SCHEDULE_MONTHS = 1200


def _finite_field(value: Any, field: str) -> Decimal:
    try:
        return to_decimal(value)
    except ValueError as exc:
        raise InvalidLoanTerms(field, f"{field} must be a finite number; got {value!r}") from exc


def validate_terms(terms: LoanTerms) -> Tuple[Decimal, Decimal, Decimal]:
    """Return ``(principal, term_days, tea)`` as decimals.

    Raises ``InvalidLoanTerms`` naming the first offending field.
    """
    principal = _finite_field(terms.principal, "principal")
    if principal <= 0:
        raise InvalidLoanTerms("principal", f"principal must be positive; got {principal}")
    term_days = _finite_field(terms.term_days, "term_days")
    if term_days <= 0:
        raise InvalidLoanTerms("term_days", f"term_days must be positive; got {term_days}")
    tea = _finite_field(terms.annual_effective_rate_percent, "annual_effective_rate_percent")
    if tea < 0:
        raise InvalidLoanTerms(
            "annual_effective_rate_percent",
            f"annual_effective_rate_percent cannot be negative; got {tea}",
        )
    return principal, term_days, tea


def _out_of_range(term_days: Decimal) -> InvalidLoanTerms:
    return InvalidLoanTerms(
        "term_days", f"term_days is too long to compute the interest; got {term_days}"
    )


def monthly_rate(tea: Decimal) -> Decimal:
    """Monthly effective rate (decimal) equivalent to a TEA in percent."""
    return (1 + tea / HUNDRED) ** (1 / MONTHS_PER_YEAR) - 1


def _calculate_annuity_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the annuity (equal installment) monthly payment for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``.
    """
    if term <= 0:
        raise InvalidTerm(f"Term in months must be positive; got {term}")
    if rate_per_month == 0:
        return principal / Decimal(term)
    factor = (1 + rate_per_month) ** term
    if factor - 1 == 0:
        raise DegenerateAmortization("Installment denominator is zero; cannot amortize the loan")
    return principal * (rate_per_month * factor) / (factor - 1)


class AmortizedInstallmentInterest:
    """Interest paid by a fixed monthly installment loan."""

    name = "amortized"

    def compute(self, terms: LoanTerms) -> AmortizationResult:
        principal, term_days, tea = validate_terms(terms)
        rate_per_month = monthly_rate(tea)
        months = months_from_days(term_days)
        try:
            installment = _calculate_annuity_payment(principal, rate_per_month, months)
            interest = installment * months - principal
        except (Overflow, InvalidOperation) as exc:
            raise _out_of_range(term_days) from exc
        if rate_per_month == 0:
            # Equal installments of P / n repay exactly the principal.
            interest = ZERO
        return AmortizationResult(
            total_interest=max(ZERO, interest),
            strategy=self.name,
            principal=principal,
            term_days=term_days,
            months=months,
            installment=installment,
        )


class ContinuousCompoundingInterest:
    """Interest of a bullet loan compounded at the TEA over ``days / 365`` years."""

    name = "continuous"

    def compute(self, terms: LoanTerms) -> AmortizationResult:
        principal, term_days, tea = validate_terms(terms)
        if tea == 0:
            interest = ZERO
        else:
            try:
                growth = (1 + tea / HUNDRED) ** (term_days / DAYS_PER_YEAR)
                interest = principal * (growth - 1)
            except (Overflow, InvalidOperation) as exc:
                raise _out_of_range(term_days) from exc
        return AmortizationResult(
            total_interest=max(ZERO, interest),
            strategy=self.name,
            principal=principal,
            term_days=term_days,
        )


STRATEGIES: Dict[str, Any] = {
    AmortizedInstallmentInterest.name: AmortizedInstallmentInterest(),
    ContinuousCompoundingInterest.name: ContinuousCompoundingInterest(),
}

DEFAULT_STRATEGY = AmortizedInstallmentInterest.name


def get_strategy(name: str):
    try:
        return STRATEGIES[name]
    except KeyError:
        raise UnknownStrategy(
            f"Unknown interest strategy: {name!r}. Valid options: {', '.join(STRATEGIES)}."
        ) from None


def compute_interest(terms: LoanTerms, strategy: str = DEFAULT_STRATEGY) -> AmortizationResult:
    """Compute the total interest of ``terms`` with the named strategy."""
    result = get_strategy(strategy).compute(terms)
    logger.debug("Interest for %s with %s: %s", terms, strategy, result.total_interest)
    return result


def amortization_schedule(terms: LoanTerms) -> List[ScheduleEntry]:
    """Build the month-by-month schedule of the fixed-installment loan.

    Uses the same monthly rate, term and installment as
    ``AmortizedInstallmentInterest``. The last payment absorbs whatever
    residual balance rounding leaves, so the schedule always ends at zero.
    Terms longer than ``MAX_SCHEDULE_MONTHS`` months raise
    ``InvalidLoanTerms``.
    """
    principal, term_days, tea = validate_terms(terms)
    rate_per_month = monthly_rate(tea)
    months = months_from_days(term_days)
    if months > MAX_SCHEDULE_MONTHS:
        raise InvalidLoanTerms(
            "term_days",
            f"Schedules are limited to {MAX_SCHEDULE_MONTHS} months; got {months}",
        )
    installment = _calculate_annuity_payment(principal, rate_per_month, months)

    schedule: List[ScheduleEntry] = []
    balance = principal
    for period in range(1, months + 1):
        starting_balance = balance
        interest_payment = balance * rate_per_month
        principal_payment = installment - interest_payment
        payment = installment
        if period == months:
            principal_payment = balance
            payment = principal_payment + interest_payment
        balance -= principal_payment
        # Round very small residuals down to zero.
        if balance.copy_abs() < HALF_CENT:
            balance = ZERO
        schedule.append(
            ScheduleEntry(
                period=period,
                starting_balance=starting_balance,
                payment=payment,
                principal_payment=principal_payment,
                interest_payment=interest_payment,
                ending_balance=balance,
            )
        )
    return schedule


def simulate(data: Dict[str, Any], strategy: str = DEFAULT_STRATEGY) -> SimulationResult:
    """Run the whole calculation for one extraction reply.

    ``data`` carries the service's keys (``monto``, ``valor_tasa``,
    ``tipo_tasa``, ``periodo``, ``capitalizacion`` and
    ``plazo_unidad_de_tiempo``).
    """
    tea = normalize(RateSpec.from_extraction(data))
    result = compute_interest(LoanTerms.from_extraction(data, tea), strategy)
    return SimulationResult(
        principal=result.principal,
        term_days=result.term_days,
        annual_effective_rate_percent=tea,
        total_interest=result.total_interest,
        strategy=result.strategy,
    )
