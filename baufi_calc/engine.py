"""Core calculation engine for the special-payment calculator.

This module implements the month-by-month simulation of an annuity-style loan
with special payments and a fixed-rate period, and the analyses built on top
of it: the comparison of the actual schedule against a baseline without
special payments, and the marginal impact of every single special payment.
All functions are pure; they only read the ``LoanTerms`` they are given.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal, getcontext
from typing import Dict, Iterable, List, Tuple

from .data_models import (
    ComparisonResult,
    ExtraPayment,
    LoanTerms,
    MonthRecord,
    PaymentImpact,
    ScheduleResult,
    YearSummary,
)
from .utils import add_months, add_years, first_of_month, month_key

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

# 60 years
MAX_MONTHS = 720

ZERO = Decimal("0")
BALANCE_EPSILON = Decimal("0.01")


def _bucket_extra_payments(payments: Iterable[ExtraPayment]) -> Dict[Tuple[int, int], Decimal]:
    """Sum extra payments per calendar month for quick lookup."""
    buckets: Dict[Tuple[int, int], Decimal] = defaultdict(lambda: ZERO)
    for payment in payments:
        buckets[month_key(payment.date)] += payment.amount
    return buckets


def simulate(terms: LoanTerms) -> ScheduleResult:
    """Compute the amortization schedule for a loan.

    Parameters
    ----------
    terms: LoanTerms
        The loan definition including its special payments.

    Returns
    -------
    ScheduleResult
        The monthly records starting at the first day of the start month and
        ending with the month the balance reaches zero, together with totals
        and the fixed-rate period bookkeeping. If the loan is not paid off
        within ``MAX_MONTHS`` the result has ``paid_off`` set to False.
    """
    installment = terms.monthly_installment()
    fixed_period_end_date = add_years(terms.start_date, terms.fixed_rate_years)
    extras_by_month = _bucket_extra_payments(terms.extra_payments)

    balance = terms.principal
    current_date = first_of_month(terms.start_date)
    records: List[MonthRecord] = []
    total_interest = ZERO
    total_extra = ZERO
    total_paid = ZERO
    balance_at_fixed_end = ZERO
    fixed_end_recorded = False
    warned_negative_amortization = False

    while balance > ZERO and len(records) < MAX_MONTHS:
        interest = balance * terms.annual_rate_percent / Decimal(1200)
        scheduled = installment - interest

        # The installment does not cover the interest. Unpaid interest is not
        # capitalized, so the balance stays flat instead of growing.
        if scheduled < ZERO:
            if not warned_negative_amortization:
                logger.warning(
                    "Installment %s does not cover interest %s in %s; principal will not decrease",
                    installment,
                    interest,
                    current_date.isoformat(),
                )
                warned_negative_amortization = True
            scheduled = ZERO

        extra = extras_by_month.get(month_key(current_date), ZERO)

        # Extra payments take priority; the scheduled part absorbs the surplus
        if scheduled + extra > balance:
            scheduled = balance - extra

        deduction = scheduled + extra
        payment = min(interest + deduction, balance + interest)

        balance -= deduction
        if balance < BALANCE_EPSILON:
            balance = ZERO

        is_fixed_end = not fixed_end_recorded and current_date >= fixed_period_end_date
        if is_fixed_end:
            balance_at_fixed_end = balance
            fixed_end_recorded = True

        records.append(
            MonthRecord(
                date=current_date,
                index=len(records),
                interest=interest,
                scheduled_principal=scheduled,
                extra_principal=extra,
                total_payment=payment,
                remaining_balance=balance,
                is_fixed_period_end=is_fixed_end,
            )
        )
        total_interest += interest
        total_extra += extra
        total_paid += payment
        current_date = add_months(current_date, 1)

    paid_off = balance == ZERO
    if not paid_off:
        logger.warning(
            "Loan not paid off after %d months; remaining balance %s",
            MAX_MONTHS,
            balance,
        )

    return ScheduleResult(
        records=tuple(records),
        monthly_installment=installment,
        total_interest=total_interest,
        total_extra_payments=total_extra,
        total_paid=total_paid,
        payoff_date=records[-1].date,
        fixed_period_end_date=fixed_period_end_date,
        balance_at_fixed_period_end=balance_at_fixed_end,
        paid_off=paid_off,
    )


def interest_until_fixed_period_end(result: ScheduleResult) -> Decimal:
    """Return the interest paid from the first month up to the fixed-rate end.

    The record flagged as fixed-period end is included, as is the first record
    dated after the fixed-period end date when no record was flagged.
    """
    total = ZERO
    for record in result.records:
        total += record.interest
        if record.is_fixed_period_end or record.date > result.fixed_period_end_date:
            break
    return total


def compare(terms: LoanTerms) -> ComparisonResult:
    """Compare the schedule with special payments against one without them."""
    baseline = simulate(terms.without_extra_payments())
    actual = simulate(terms)

    interest_saved = baseline.total_interest - actual.total_interest
    months_saved = max(0, baseline.months - actual.months)
    interest_saved_at_fixed_end = interest_until_fixed_period_end(baseline) - interest_until_fixed_period_end(actual)
    capital_difference = max(
        ZERO,
        baseline.balance_at_fixed_period_end - actual.balance_at_fixed_period_end,
    )
    logger.debug(
        "Comparison: %s interest saved, %d months saved", interest_saved, months_saved
    )
    return ComparisonResult(
        baseline=baseline,
        actual=actual,
        interest_saved=interest_saved,
        months_saved=months_saved,
        interest_saved_at_fixed_end=interest_saved_at_fixed_end,
        capital_difference_at_fixed_end=capital_difference,
    )


def _impact_against(with_payment: ScheduleResult, terms: LoanTerms, payment_id: str) -> PaymentImpact:
    without_payment = simulate(terms.without_payment(payment_id))
    return PaymentImpact(
        payment_id=payment_id,
        interest_saved=max(ZERO, without_payment.total_interest - with_payment.total_interest),
        months_saved=max(0, without_payment.months - with_payment.months),
    )


def attribute_impact(terms: LoanTerms, payment_id: str) -> PaymentImpact:
    """Return the marginal effect of one special payment.

    The loan is simulated with all special payments and again without the
    given one. Because payments interact, the impacts of all payments of a
    loan do not add up to the total saving reported by :func:`compare`. An
    unknown ``payment_id`` yields a zero impact.
    """
    return _impact_against(simulate(terms), terms, payment_id)


def attribute_all_impacts(terms: LoanTerms) -> List[PaymentImpact]:
    """Return the impact of every special payment, ordered by payment date."""
    with_all = simulate(terms)
    ordered = sorted(terms.extra_payments, key=lambda p: p.date)
    return [_impact_against(with_all, terms, p.id) for p in ordered]


def aggregate_yearly(result: ScheduleResult) -> List[YearSummary]:
    """Aggregate a monthly schedule by calendar year."""
    years: Dict[int, YearSummary] = {}
    for record in result.records:
        summary = years.get(record.date.year)
        if summary is None:
            summary = years[record.date.year] = YearSummary(year=record.date.year)
        summary.interest += record.interest
        summary.principal += record.scheduled_principal + record.extra_principal
        summary.extra_principal += record.extra_principal
        summary.payment += record.total_payment
        summary.end_balance = record.remaining_balance
    return [years[y] for y in sorted(years)]
