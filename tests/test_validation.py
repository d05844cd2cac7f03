import pytest

from baufi_calc.validation import ValidationError, is_valid_date, validate_loan, validate_special_payment


def test_valid_loan_passes(loan_payload):
    validate_loan(loan_payload)


@pytest.mark.parametrize(
    "key, value, message",
    [
        ("name", "  ", "name is required"),
        ("amount", 0, "amount must be > 0"),
        ("interestRate", 20.5, "interestRate must be between 0 and 20"),
        ("interestRate", -1, "interestRate must be between 0 and 20"),
        ("startDate", "01.01.2024", "startDate must be in YYYY-MM-DD format"),
        ("fixedInterestYears", 0, "fixedInterestYears must be between 1 and 50"),
        ("fixedInterestYears", 51, "fixedInterestYears must be between 1 and 50"),
        ("repaymentType", "ANNUITY", "repaymentType must be PERCENTAGE or ABSOLUTE"),
        ("repaymentValue", -5, "repaymentValue must be > 0"),
        ("amount", "300000", "amount must be a number"),
    ],
)
def test_invalid_loan_fields(loan_payload, key, value, message):
    loan_payload[key] = value
    with pytest.raises(ValidationError, match=message):
        validate_loan(loan_payload)


def test_missing_field_on_create(loan_payload):
    del loan_payload["repaymentType"]
    with pytest.raises(ValidationError):
        validate_loan(loan_payload)


def test_partial_update_checks_only_given_fields():
    validate_loan({"interestRate": 4.1}, partial=True)
    with pytest.raises(ValidationError):
        validate_loan({"fixedInterestYears": 60}, partial=True)


def test_date_format():
    assert is_valid_date("2024-02-29")
    assert not is_valid_date("2023-02-29")
    assert not is_valid_date("2024-2-1")
    assert not is_valid_date(None)


def test_special_payment_validation():
    validate_special_payment({"date": "2024-06-15", "amount": 5000, "note": "Bonus"})
    with pytest.raises(ValidationError, match="date is required"):
        validate_special_payment({"amount": 5000})
    with pytest.raises(ValidationError, match="YYYY-MM-DD"):
        validate_special_payment({"date": "15.06.2024", "amount": 5000})
    with pytest.raises(ValidationError, match="amount must be > 0"):
        validate_special_payment({"date": "2024-06-15", "amount": 0})


@pytest.mark.parametrize("key", ["amount", "interestRate", "repaymentValue"])
@pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_numbers_are_rejected(loan_payload, key, value):
    loan_payload[key] = value
    with pytest.raises(ValidationError, match=f"{key} must be a finite number"):
        validate_loan(loan_payload)


def test_non_finite_special_payment_amount_is_rejected():
    with pytest.raises(ValidationError, match="amount must be a finite number"):
        validate_special_payment({"date": "2024-06-15", "amount": float("inf")})
