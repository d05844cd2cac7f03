"""Output helpers for the special-payment calculator.

This module provides simple functions to render amortization schedules,
comparisons and per-payment impacts in a tabular text format. Amounts are
printed with two decimals and dates in ISO form; locale-aware formatting is
left to richer front ends.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import click

from .data_models import ComparisonResult, ExtraPayment, MonthRecord, PaymentImpact, ScheduleResult, YearSummary


def _years_months(months: int) -> str:
    return f"{months // 12} years {months % 12} months"


def print_summary(result: ScheduleResult) -> None:
    """Print the totals of a schedule in a human‑readable format."""
    click.echo("Summary")
    click.echo("-" * 72)
    click.echo(f"Monthly installment    : {result.monthly_installment:.2f}")
    click.echo(f"Total interest         : {result.total_interest:.2f}")
    if result.total_extra_payments:
        click.echo(f"Special payments       : {result.total_extra_payments:.2f}")
    click.echo(f"Total paid             : {result.total_paid:.2f}")
    click.echo(f"Months                 : {result.months} ({_years_months(result.months)})")
    click.echo(f"Payoff date            : {result.payoff_date.isoformat()}")
    click.echo(f"Fixed rate ends        : {result.fixed_period_end_date.isoformat()}")
    click.echo(f"Balance at fixed end   : {result.balance_at_fixed_period_end:.2f}")
    if not result.paid_off:
        click.secho(
            f"Warning: loan is not paid off after {result.months} months "
            f"(remaining {result.records[-1].remaining_balance:.2f})",
            fg="yellow",
        )
    click.echo("-" * 72)


def print_schedule(records: Iterable[MonthRecord]) -> None:
    """Print the amortization schedule as a simple table.

    The record that closes the fixed-rate period is marked with ``*``.
    """
    headers = ["#", "Date", "Payment", "Interest", "Principal", "Special", "Balance", "Fixed"]
    click.echo("\t".join(headers))
    for record in records:
        row = [
            str(record.index),
            record.date.isoformat(),
            f"{record.total_payment:.2f}",
            f"{record.interest:.2f}",
            f"{record.scheduled_principal:.2f}",
            f"{record.extra_principal:.2f}",
            f"{record.remaining_balance:.2f}",
            "*" if record.is_fixed_period_end else "",
        ]
        click.echo("\t".join(row))


def print_yearly(years: Iterable[YearSummary]) -> None:
    click.echo("\t".join(["Year", "Payment", "Interest", "Principal", "Special", "EndBal"]))
    for y in years:
        click.echo(
            f"{y.year}\t{y.payment:.2f}\t{y.interest:.2f}\t{y.principal:.2f}\t"
            f"{y.extra_principal:.2f}\t{y.end_balance:.2f}"
        )


def print_comparison(comparison: ComparisonResult) -> None:
    """Print baseline and actual schedules side by side with the savings.

    A positive difference means the special payments made the loan cheaper or
    shorter.
    """
    base, actual = comparison.baseline, comparison.actual
    click.echo("Comparison")
    click.echo("=" * 72)
    click.echo(f"{'Metric':24s} {'Baseline':>15s} {'Actual':>15s} {'Difference':>15s}")
    click.echo(
        f"{'total_interest':24s} {base.total_interest:15.2f} {actual.total_interest:15.2f} "
        f"{comparison.interest_saved:15.2f}"
    )
    click.echo(f"{'months':24s} {base.months:15d} {actual.months:15d} {comparison.months_saved:15d}")
    click.echo(
        f"{'balance_at_fixed_end':24s} {base.balance_at_fixed_period_end:15.2f} "
        f"{actual.balance_at_fixed_period_end:15.2f} {comparison.capital_difference_at_fixed_end:15.2f}"
    )
    click.echo("=" * 72)
    click.echo(f"Interest saved         : {comparison.interest_saved:.2f}")
    click.echo(f"Term reduction         : {_years_months(comparison.months_saved)}")
    click.echo(f"Interest saved (fixed) : {comparison.interest_saved_at_fixed_end:.2f}")
    click.echo(f"Payoff date            : {actual.payoff_date.isoformat()}")


def print_impacts(payments: Sequence[ExtraPayment], impacts: Sequence[PaymentImpact]) -> None:
    """Print the marginal effect of each special payment."""
    by_id = {p.id: p for p in payments}
    click.echo("\t".join(["Id", "Date", "Amount", "InterestSaved", "MonthsSaved", "Note"]))
    for impact in impacts:
        payment = by_id.get(impact.payment_id)
        if payment is None:
            continue
        click.echo(
            f"{payment.id}\t{payment.date.isoformat()}\t{payment.amount:.2f}\t"
            f"{impact.interest_saved:.2f}\t{impact.months_saved}\t{payment.note or ''}"
        )
