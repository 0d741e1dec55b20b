"""Output helpers for the Qredi simulator.

This module renders simulation results for the two consumers of the core:
the rendering layer (formatted strings plus chart-series numbers) and the
command line (plain-text summary and schedule tables). Currency amounts use
the Spanish convention of the original product: no decimals, ``.`` as
thousands separator, and no grouping for four-digit amounts.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable

from .data_models import ScheduleEntry, SimulationResult

DEFAULT_CURRENCY = "COP"
CHART_LABELS = ["Monto Inicial", "Interés Calculado"]


def format_rate(tea: Decimal) -> str:
    """Format a TEA in percent with two decimals, e.g. ``"26.82%"``."""
    return f"{Decimal(tea).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)}%"


def group_thousands(amount: Decimal) -> str:
    """Round ``amount`` to an integer and group its digits with dots."""
    rounded = int(Decimal(amount).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    sign = "-" if rounded < 0 else ""
    digits = str(abs(rounded))
    if len(digits) <= 4:
        return sign + digits
    groups = []
    while digits:
        groups.insert(0, digits[-3:])
        digits = digits[:-3]
    return sign + ".".join(groups)


def format_currency(amount: Decimal, currency: str = DEFAULT_CURRENCY) -> str:
    """Format an amount as ``"1.338.380 COP"``."""
    return f"{group_thousands(amount)} {currency}"


def chart_series(result: SimulationResult) -> Dict[str, Any]:
    """Doughnut chart input comparing the principal with the interest."""
    return {
        "labels": list(CHART_LABELS),
        "data": [float(result.principal), float(result.total_interest)],
    }


def result_to_dict(result: SimulationResult, currency: str = DEFAULT_CURRENCY) -> Dict[str, Any]:
    """Convert a result into a JSON-serialisable dictionary."""
    return {
        "principal": float(result.principal),
        "term_days": float(result.term_days),
        "tea": float(result.annual_effective_rate_percent),
        "total_interest": float(result.total_interest),
        "total_cost": float(result.total_cost),
        "strategy": result.strategy,
        "tea_display": format_rate(result.annual_effective_rate_percent),
        "interest_display": format_currency(result.total_interest, currency),
        "principal_display": format_currency(result.principal, currency),
        "chart": chart_series(result),
    }


def print_summary(result: SimulationResult, currency: str = DEFAULT_CURRENCY) -> None:
    """Print a summary of a simulation in a human‑readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Principal          : {format_currency(result.principal, currency)}")
    print(f"Term               : {result.term_days} days")
    print(f"TEA                : {format_rate(result.annual_effective_rate_percent)}")
    print(f"Total interest     : {format_currency(result.total_interest, currency)}")
    print(f"Total cost         : {format_currency(result.total_cost, currency)}")
    print(f"Interest strategy  : {result.strategy}")
    print("-" * 72)


def print_schedule(schedule: Iterable[ScheduleEntry]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = ["Period", "StartBal", "Payment", "Principal", "Interest", "EndBal"]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.period),
            f"{entry.starting_balance:.2f}",
            f"{entry.payment:.2f}",
            f"{entry.principal_payment:.2f}",
            f"{entry.interest_payment:.2f}",
            f"{entry.ending_balance:.2f}",
        ]
        print("\t".join(row))
