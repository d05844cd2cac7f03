from datetime import date
from decimal import Decimal

import pytest

from baufi_calc.data_models import ExtraPayment, FixedMonthlyAmount, LoanTerms, PercentageOfPrincipal
from baufi_calc_web.app import create_app
from baufi_calc_web.loan_store import LoanStore


@pytest.fixture
def standard_terms():
    """300k at 3.5 % with 2 % initial repayment, rate fixed for 10 years."""
    return LoanTerms(
        principal=Decimal("300000"),
        annual_rate_percent=Decimal("3.5"),
        start_date=date(2024, 1, 1),
        fixed_rate_years=10,
        repayment=PercentageOfPrincipal(Decimal("2.0")),
    )


@pytest.fixture
def small_loan():
    """10k at 6 % with 1000 a month and two special payments of 4000."""
    return LoanTerms(
        principal=Decimal("10000"),
        annual_rate_percent=Decimal("6"),
        start_date=date(2024, 1, 1),
        fixed_rate_years=5,
        repayment=FixedMonthlyAmount(Decimal("1000")),
        extra_payments=(
            ExtraPayment(id="a", date=date(2024, 1, 20), amount=Decimal("4000")),
            ExtraPayment(id="b", date=date(2024, 2, 3), amount=Decimal("4000")),
        ),
    )


@pytest.fixture
def store(tmp_path):
    return LoanStore(f"sqlite:///{tmp_path / 'loans.sqlite3'}")


@pytest.fixture
def client(store):
    app = create_app(store)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def loan_payload():
    return {
        "name": "Haus",
        "amount": 300000,
        "interestRate": 3.5,
        "startDate": "2024-01-01",
        "fixedInterestYears": 10,
        "repaymentType": "PERCENTAGE",
        "repaymentValue": 2,
    }
