"""Command‑line interface for the special-payment calculator.

This module uses the ``click`` library to implement a multi‑command interface.
Users can compute the amortization schedule of a loan with special payments,
compare it against the same loan without special payments, or list the effect
of every single special payment. Schedules can be exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
import math
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .data_models import ExtraPayment, FixedMonthlyAmount, LoanTerms, PercentageOfPrincipal, ScheduleResult
from .engine import aggregate_yearly, attribute_all_impacts, compare, simulate
from .formatter import print_comparison, print_impacts, print_schedule, print_summary, print_yearly
from .utils import decimal_from_str, parse_iso_date


def parse_amount(value: str) -> str:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("300000") and shorthand with ``k``/``m`` suffixes
    (e.g., "300k" meaning 300_000). Returns a decimal string so the value can
    be converted to ``Decimal`` without binary rounding.
    """
    value = value.strip().lower().replace(",", "")
    factor = 1
    if value.endswith("k"):
        factor = 1_000
        value = value[:-1]
    elif value.endswith("m"):
        factor = 1_000_000
        value = value[:-1]
    try:
        return str(decimal_from_str(value) * factor)
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_extra_strings(values: Tuple[str, ...]) -> List[ExtraPayment]:
    """Parse ``YYYY-MM-DD:AMOUNT[:ID]`` entries into special payments.

    Entries without an id are numbered in the order given (``sp1``, ``sp2``...).
    """
    payments: List[ExtraPayment] = []
    for number, item in enumerate(values, start=1):
        parts = item.split(":")
        if len(parts) not in (2, 3):
            raise click.BadParameter(
                f"Special payment must be in YYYY-MM-DD:AMOUNT[:ID] format; got {item}"
            )
        try:
            dt = parse_iso_date(parts[0])
        except ValueError as exc:
            raise click.BadParameter(str(exc))
        amount = decimal_from_str(parse_amount(parts[1]))
        if amount <= 0:
            raise click.BadParameter(f"Special payment amount must be positive; got {item}")
        payment_id = parts[2] if len(parts) == 3 and parts[2] else f"sp{number}"
        payments.append(ExtraPayment(id=payment_id, date=dt, amount=amount))
    ids = [p.id for p in payments]
    if len(set(ids)) != len(ids):
        raise click.BadParameter("Special payment ids must be unique")
    return payments


def build_terms_from_options(
    principal: str,
    rate: float,
    start_date: str,
    fixed_years: int,
    repayment_percent: Optional[str],
    monthly_payment: Optional[str],
    extra: Tuple[str, ...],
) -> LoanTerms:
    principal_value = decimal_from_str(parse_amount(principal))
    if principal_value <= 0:
        raise click.BadParameter("Principal must be positive")
    if not math.isfinite(rate):
        raise click.BadParameter("Rate must be a finite number")
    if rate < 0:
        raise click.BadParameter("Rate must not be negative")
    if fixed_years <= 0:
        raise click.BadParameter("Fixed rate years must be positive")
    try:
        start_dt = parse_iso_date(start_date)
    except ValueError as exc:
        raise click.BadParameter(str(exc))

    if (repayment_percent is None) == (monthly_payment is None):
        raise click.BadParameter("Use exactly one of --repayment-percent or --monthly-payment")
    if repayment_percent is not None:
        try:
            percent = decimal_from_str(repayment_percent.rstrip("%"))
        except ValueError as exc:
            raise click.BadParameter(str(exc))
        repayment = PercentageOfPrincipal(percent)
    else:
        repayment = FixedMonthlyAmount(decimal_from_str(parse_amount(monthly_payment)))

    terms = LoanTerms(
        principal=principal_value,
        annual_rate_percent=decimal_from_str(str(rate)),
        start_date=start_dt,
        fixed_rate_years=fixed_years,
        repayment=repayment,
        extra_payments=tuple(sorted(parse_extra_strings(extra), key=lambda p: p.date)),
    )
    if terms.monthly_installment() <= 0:
        raise click.BadParameter("Monthly installment must be positive")
    return terms


def schedule_to_dict(result: ScheduleResult) -> Dict[str, Any]:
    """Convert a schedule into JSON-serialisable dictionaries."""
    return {
        "summary": {
            "monthly_installment": float(result.monthly_installment),
            "total_interest": float(result.total_interest),
            "total_extra_payments": float(result.total_extra_payments),
            "total_paid": float(result.total_paid),
            "months": result.months,
            "payoff_date": result.payoff_date.isoformat(),
            "fixed_period_end_date": result.fixed_period_end_date.isoformat(),
            "balance_at_fixed_period_end": float(result.balance_at_fixed_period_end),
            "paid_off": result.paid_off,
        },
        "schedule": [
            {
                "index": r.index,
                "date": r.date.isoformat(),
                "payment": float(r.total_payment),
                "interest": float(r.interest),
                "principal": float(r.scheduled_principal),
                "special_payment": float(r.extra_principal),
                "balance": float(r.remaining_balance),
                "fixed_period_end": r.is_fixed_period_end,
            }
            for r in result.records
        ],
    }


def export_to_json(path: Path, result: ScheduleResult) -> None:
    """Export schedule and summary to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(schedule_to_dict(result), f, indent=2)


def export_to_csv(path: Path, result: ScheduleResult) -> None:
    """Export schedule to a CSV file."""
    header = [
        "Index",
        "Date",
        "Payment",
        "Interest",
        "Principal",
        "Special_Payment",
        "Balance",
        "Fixed_Period_End",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for r in result.records:
            writer.writerow(
                [
                    r.index,
                    r.date.isoformat(),
                    float(r.total_payment),
                    float(r.interest),
                    float(r.scheduled_principal),
                    float(r.extra_principal),
                    float(r.remaining_balance),
                    r.is_fixed_period_end,
                ]
            )


def loan_options(func):
    """Attach the loan definition options shared by all commands."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount"),
        click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)"),
        click.option("--start-date", "-s", "start_date", required=True, help="Start date (YYYY-MM-DD or YYYY-MM)"),
        click.option("--fixed-years", "-f", "fixed_years", required=True, type=int, help="Years the rate is fixed"),
        click.option("--repayment-percent", "repayment_percent", help="Initial annual repayment in percent"),
        click.option("--monthly-payment", "monthly_payment", help="Fixed monthly installment"),
        click.option("--extra", "extra", multiple=True, help="Special payment in YYYY-MM-DD:AMOUNT[:ID] format"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """A command‑line calculator for loans with special payments."""
    level = "DEBUG" if verbose else os.environ.get("BAUFI_LOG_LEVEL", "WARNING")
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@loan_options
@click.option("--yearly", is_flag=True, help="Print calendar-year totals instead of months")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: float,
    start_date: str,
    fixed_years: int,
    repayment_percent: Optional[str],
    monthly_payment: Optional[str],
    extra: Tuple[str, ...],
    yearly: bool,
    output: Optional[str],
) -> None:
    """Compute and print the full amortization schedule."""
    terms = build_terms_from_options(
        principal, rate, start_date, fixed_years, repayment_percent, monthly_payment, extra
    )
    result = simulate(terms)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    print_summary(result)
    if yearly:
        print_yearly(aggregate_yearly(result))
    else:
        print_schedule(result.records)


@cli.command(name="compare")
@loan_options
def compare_cmd(
    principal: str,
    rate: float,
    start_date: str,
    fixed_years: int,
    repayment_percent: Optional[str],
    monthly_payment: Optional[str],
    extra: Tuple[str, ...],
) -> None:
    """Compare the loan with and without its special payments."""
    terms = build_terms_from_options(
        principal, rate, start_date, fixed_years, repayment_percent, monthly_payment, extra
    )
    print_comparison(compare(terms))


@cli.command()
@loan_options
def impact(
    principal: str,
    rate: float,
    start_date: str,
    fixed_years: int,
    repayment_percent: Optional[str],
    monthly_payment: Optional[str],
    extra: Tuple[str, ...],
) -> None:
    """Show how much each special payment saves on its own."""
    terms = build_terms_from_options(
        principal, rate, start_date, fixed_years, repayment_percent, monthly_payment, extra
    )
    if not terms.extra_payments:
        click.echo("No special payments given.")
        return
    print_impacts(terms.extra_payments, attribute_all_impacts(terms))


if __name__ == "__main__":
    cli()
