from decimal import Decimal

import pytest

from qredi_calc.data_models import LoanTerms
from qredi_calc.engine import (
    AmortizedInstallmentInterest,
    ContinuousCompoundingInterest,
    _calculate_annuity_payment,
    amortization_schedule,
    compute_interest,
    monthly_rate,
    simulate,
)
from qredi_calc.errors import (
    DegenerateAmortization,
    InvalidLoanTerms,
    InvalidPeriod,
    InvalidTerm,
    UnknownStrategy,
)

REFERENCE_TERMS = LoanTerms(principal=2000000, term_days=1095, annual_effective_rate_percent=42.58)


def test_amortized_reference_loan():
    result = compute_interest(REFERENCE_TERMS, "amortized")

    assert result.strategy == "amortized"
    assert result.months == 37
    assert result.total_interest == result.installment * 37 - Decimal(2000000)
    # 2,000,000 at 42.58 % TEA over 1095 days.
    assert result.total_interest.quantize(Decimal("0.01")) == Decimal("1338379.99")
    assert result.installment.quantize(Decimal("0.01")) == Decimal("90226.49")


def test_continuous_reference_loan():
    result = compute_interest(REFERENCE_TERMS, "continuous")

    assert result.strategy == "continuous"
    assert result.months is None
    assert result.total_interest == Decimal("3797033.723024")


def test_strategies_disagree():
    amortized = compute_interest(REFERENCE_TERMS, "amortized").total_interest
    continuous = compute_interest(REFERENCE_TERMS, "continuous").total_interest
    assert amortized < continuous


def test_default_strategy_is_amortized():
    assert compute_interest(REFERENCE_TERMS) == AmortizedInstallmentInterest().compute(REFERENCE_TERMS)


@pytest.mark.parametrize("strategy", ["amortized", "continuous"])
def test_zero_rate_yields_no_interest(strategy):
    terms = LoanTerms(principal=2000000, term_days=1095, annual_effective_rate_percent=0)
    result = compute_interest(terms, strategy)
    assert result.total_interest == 0


def test_small_principal_keeps_sub_cent_interest():
    terms = LoanTerms(principal=1, term_days=60, annual_effective_rate_percent=1)
    result = compute_interest(terms, "amortized")

    assert result.total_interest == result.installment * 2 - 1
    assert abs(result.total_interest - Decimal("0.0012444791")) < Decimal("1e-10")


def test_zero_rate_installment_is_principal_over_months():
    terms = LoanTerms(principal=1200, term_days=360, annual_effective_rate_percent=0)
    result = compute_interest(terms)
    assert result.months == 12
    assert result.installment == Decimal(100)


def test_term_is_rounded_up_to_whole_months():
    terms = LoanTerms(principal=1000, term_days=31, annual_effective_rate_percent=12)
    assert compute_interest(terms).months == 2
    terms = LoanTerms(principal=1000, term_days=1, annual_effective_rate_percent=12)
    assert compute_interest(terms).months == 1


def test_monthly_rate_compounds_back_to_the_tea():
    rate = monthly_rate(Decimal("26.8241794562545"))
    assert abs(rate - Decimal("0.02")) < Decimal("1e-10")


def test_one_year_bullet_loan_pays_the_tea():
    terms = LoanTerms(principal=1000, term_days=365, annual_effective_rate_percent=10)
    assert ContinuousCompoundingInterest().compute(terms).total_interest == Decimal("100")


@pytest.mark.parametrize(
    "principal, days, tea, field",
    [
        (0, 30, 10, "principal"),
        (-5, 30, 10, "principal"),
        ("abc", 30, 10, "principal"),
        (None, 30, 10, "principal"),
        (1000, 0, 10, "term_days"),
        (1000, float("nan"), 10, "term_days"),
        (1000, 30, -1, "annual_effective_rate_percent"),
        (1000, 30, "inf", "annual_effective_rate_percent"),
    ],
)
def test_invalid_loan_terms(principal, days, tea, field):
    terms = LoanTerms(principal=principal, term_days=days, annual_effective_rate_percent=tea)
    for strategy in ("amortized", "continuous"):
        with pytest.raises(InvalidLoanTerms) as excinfo:
            compute_interest(terms, strategy)
        assert excinfo.value.field == field


def test_unknown_strategy():
    with pytest.raises(UnknownStrategy):
        compute_interest(REFERENCE_TERMS, "simple")


def test_annuity_payment_rejects_empty_term():
    with pytest.raises(InvalidTerm):
        _calculate_annuity_payment(Decimal(1000), Decimal("0.01"), 0)


def test_annuity_payment_rejects_vanishing_denominator():
    # Too small to move (1 + i)^n away from 1 at 28 digits.
    with pytest.raises(DegenerateAmortization):
        _calculate_annuity_payment(Decimal(1000), Decimal("1e-40"), 12)


def test_schedule_matches_amortized_interest():
    schedule = amortization_schedule(REFERENCE_TERMS)
    result = compute_interest(REFERENCE_TERMS)

    assert len(schedule) == 37
    assert schedule[0].starting_balance == Decimal(2000000)
    assert schedule[-1].ending_balance == 0
    total_interest = sum(e.interest_payment for e in schedule)
    assert abs(total_interest - result.total_interest) < Decimal("0.01")
    for previous, entry in zip(schedule, schedule[1:]):
        assert entry.starting_balance == previous.ending_balance
        assert entry.interest_payment < previous.interest_payment


def test_simulate_extraction_reply(extraction_reply):
    result = simulate(extraction_reply)

    assert result.principal == Decimal(2000000)
    assert result.term_days == Decimal(1095)
    assert abs(result.annual_effective_rate_percent - Decimal("26.824179")) < Decimal("1e-6")
    assert result.total_cost == result.principal + result.total_interest
    assert result.strategy == "amortized"


def test_simulate_reports_rate_errors_first(extraction_reply):
    extraction_reply["periodo"] = "fortnightly"
    extraction_reply["monto"] = None
    with pytest.raises(InvalidPeriod):
        simulate(extraction_reply)


def test_simulate_reports_missing_amount(extraction_reply):
    del extraction_reply["monto"]
    with pytest.raises(InvalidLoanTerms) as excinfo:
        simulate(extraction_reply, "continuous")
    assert excinfo.value.field == "principal"


@pytest.mark.parametrize("strategy", ["amortized", "continuous"])
def test_overlong_term_is_rejected(strategy):
    terms = LoanTerms(principal=1000, term_days=10**10, annual_effective_rate_percent=42.58)
    with pytest.raises(InvalidLoanTerms) as excinfo:
        compute_interest(terms, strategy)
    assert excinfo.value.field == "term_days"


def test_schedule_length_is_bounded():
    terms = LoanTerms(principal=1000, term_days=36001, annual_effective_rate_percent=10)
    with pytest.raises(InvalidLoanTerms) as excinfo:
        amortization_schedule(terms)
    assert excinfo.value.field == "term_days"
    assert len(amortization_schedule(LoanTerms(1000, 36000, 10))) == 1200
