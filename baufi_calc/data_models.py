"""Data models for the special-payment calculator.

This module defines dataclasses representing the entities used by the
calculator: the repayment modes, extra (special) payments, the loan terms fed
into a simulation and the records and results it produces. Inputs and results
are frozen so that a simulation run can never alter the values it was given,
and so that the same result may be handed to several consumers safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Optional, Tuple, Union

MONTHS_IN_YEAR = 12


@dataclass(frozen=True)
class PercentageOfPrincipal:
    """Initial repayment expressed as an annual percentage of the principal.

    The monthly installment is ``principal * (rate + percent) / 100 / 12`` and
    is derived once from the original principal.
    """

    percent: Decimal

    def monthly_installment(self, principal: Decimal, annual_rate_percent: Decimal) -> Decimal:
        return principal * (annual_rate_percent + self.percent) / Decimal(100) / Decimal(MONTHS_IN_YEAR)


@dataclass(frozen=True)
class FixedMonthlyAmount:
    """Absolute monthly installment."""

    amount: Decimal

    def monthly_installment(self, principal: Decimal, annual_rate_percent: Decimal) -> Decimal:
        return self.amount


RepaymentMode = Union[PercentageOfPrincipal, FixedMonthlyAmount]


@dataclass(frozen=True)
class ExtraPayment:
    """A special payment applied to the principal on top of the installment.

    Attributes
    ----------
    id: str
        Opaque identifier, unique within one loan.
    date: date
        The day the payment is made. Only its year and month matter to the
        simulation.
    amount: Decimal
        The positive amount applied to the principal.
    note: str, optional
        Free text attached by the user.
    """

    id: str
    date: date
    amount: Decimal
    note: Optional[str] = None


@dataclass(frozen=True)
class LoanTerms:
    """Immutable input of a simulation run.

    ``annual_rate_percent`` is the nominal rate in percent (3.5 means 3.5 %).
    ``fixed_rate_years`` is the length of the fixed-rate period counted from
    ``start_date``.
    """

    principal: Decimal
    annual_rate_percent: Decimal
    start_date: date
    fixed_rate_years: int
    repayment: RepaymentMode
    extra_payments: Tuple[ExtraPayment, ...] = ()

    def monthly_installment(self) -> Decimal:
        return self.repayment.monthly_installment(self.principal, self.annual_rate_percent)

    def without_extra_payments(self) -> "LoanTerms":
        return replace(self, extra_payments=())

    def without_payment(self, payment_id: str) -> "LoanTerms":
        remaining = tuple(p for p in self.extra_payments if p.id != payment_id)
        return replace(self, extra_payments=remaining)


@dataclass(frozen=True)
class MonthRecord:
    """One simulated month of the amortization schedule.

    ``scheduled_principal`` is the principal part of the regular installment;
    it is reduced (and may become negative) in the month where extra payments
    already consume the remaining balance. ``total_payment`` is the cash paid
    that month, never more than the balance plus the month's interest.
    """

    date: date
    index: int
    interest: Decimal
    scheduled_principal: Decimal
    extra_principal: Decimal
    total_payment: Decimal
    remaining_balance: Decimal
    is_fixed_period_end: bool = False


@dataclass(frozen=True)
class ScheduleResult:
    """The outcome of one simulation run.

    When ``paid_off`` is False the simulation hit the iteration cap before the
    balance reached zero; the schedule is then truncated and the last record
    still carries a positive balance.
    """

    records: Tuple[MonthRecord, ...]
    monthly_installment: Decimal
    total_interest: Decimal
    total_extra_payments: Decimal
    total_paid: Decimal
    payoff_date: date
    fixed_period_end_date: date
    balance_at_fixed_period_end: Decimal
    paid_off: bool = True

    @property
    def months(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class ComparisonResult:
    """Baseline (no special payments) versus actual schedule."""

    baseline: ScheduleResult
    actual: ScheduleResult
    interest_saved: Decimal
    months_saved: int
    interest_saved_at_fixed_end: Decimal
    capital_difference_at_fixed_end: Decimal


@dataclass(frozen=True)
class PaymentImpact:
    """Marginal effect of a single special payment."""

    payment_id: str
    interest_saved: Decimal = Decimal("0")
    months_saved: int = 0


@dataclass
class YearSummary:
    """Calendar-year aggregate of a schedule."""

    year: int
    interest: Decimal = field(default_factory=lambda: Decimal("0"))
    principal: Decimal = field(default_factory=lambda: Decimal("0"))
    extra_principal: Decimal = field(default_factory=lambda: Decimal("0"))
    payment: Decimal = field(default_factory=lambda: Decimal("0"))
    end_balance: Decimal = field(default_factory=lambda: Decimal("0"))
