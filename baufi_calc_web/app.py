import logging
import os
import time
from typing import Optional

from flask import Flask, g, jsonify, request

from baufi_calc.data_models import ComparisonResult, PaymentImpact, ScheduleResult
from baufi_calc.engine import aggregate_yearly, attribute_all_impacts, attribute_impact, compare, simulate
from baufi_calc.validation import ValidationError
from baufi_calc_web.loan_store import LoanStore, create_store_from_env

logger = logging.getLogger(__name__)


def _money(value) -> float:
    return round(float(value), 2)


def _error(status: int, message: str):
    return jsonify({"error": message}), status


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None
    return data


def serialize_schedule(result: ScheduleResult) -> dict:
    """Convert a schedule into a JSON-serialisable dictionary for charts."""
    return {
        "monthlyInstallment": _money(result.monthly_installment),
        "totalInterest": _money(result.total_interest),
        "totalSpecialPayments": _money(result.total_extra_payments),
        "totalPaid": _money(result.total_paid),
        "months": result.months,
        "payoffDate": result.payoff_date.isoformat(),
        "fixedPeriodEndDate": result.fixed_period_end_date.isoformat(),
        "remainingAtFixedEnd": _money(result.balance_at_fixed_period_end),
        "paidOff": result.paid_off,
        "schedule": [
            {
                "date": r.date.isoformat(),
                "monthIndex": r.index,
                "interest": _money(r.interest),
                "principal": _money(r.scheduled_principal),
                "specialPayment": _money(r.extra_principal),
                "totalPayment": _money(r.total_payment),
                "remainingBalance": _money(r.remaining_balance),
                "isFixedPeriodEnd": r.is_fixed_period_end,
            }
            for r in result.records
        ],
    }


def serialize_comparison(comparison: ComparisonResult) -> dict:
    return {
        "interestSaved": _money(comparison.interest_saved),
        "monthsSaved": comparison.months_saved,
        "interestSavedAtFixedEnd": _money(comparison.interest_saved_at_fixed_end),
        "capitalDifferenceAtFixedEnd": _money(comparison.capital_difference_at_fixed_end),
        "baseline": {
            "totalInterest": _money(comparison.baseline.total_interest),
            "months": comparison.baseline.months,
            "payoffDate": comparison.baseline.payoff_date.isoformat(),
            "remainingAtFixedEnd": _money(comparison.baseline.balance_at_fixed_period_end),
            "paidOff": comparison.baseline.paid_off,
        },
        "actual": {
            "totalInterest": _money(comparison.actual.total_interest),
            "months": comparison.actual.months,
            "payoffDate": comparison.actual.payoff_date.isoformat(),
            "remainingAtFixedEnd": _money(comparison.actual.balance_at_fixed_period_end),
            "paidOff": comparison.actual.paid_off,
        },
    }


def serialize_impact(impact: PaymentImpact) -> dict:
    return {
        "paymentId": impact.payment_id,
        "interestSaved": _money(impact.interest_saved),
        "monthsSaved": impact.months_saved,
    }


def create_app(store: Optional[LoanStore] = None) -> Flask:
    app = Flask(__name__)
    loan_store = store or create_store_from_env(os.environ.get("BAUFI_DATABASE_URL"))
    app.config["LOAN_STORE"] = loan_store

    def load_terms_or_404(loan_id: str):
        loan = loan_store.get_loan(loan_id)
        if loan is None:
            return None, _error(404, "loan not found")
        try:
            return loan_store.load_terms(loan_id), None
        except ValidationError as exc:
            return None, _error(400, str(exc))

    @app.before_request
    def start_timer():
        g.started = time.perf_counter()

    @app.after_request
    def log_request(response):
        elapsed = time.perf_counter() - g.get("started", time.perf_counter())
        logger.info(
            "%s %s %d %.1fms", request.method, request.path, response.status_code, elapsed * 1000
        )
        return response

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc):
        return _error(400, str(exc))

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        # Let Flask render its own HTTP errors (404 on unknown routes etc.)
        code = getattr(exc, "code", None)
        if isinstance(code, int) and code < 500:
            return _error(code, getattr(exc, "description", str(exc)))
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return _error(500, "internal server error")

    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    @app.get("/api/loans")
    def list_loans():
        return jsonify(loan_store.list_loans())

    @app.post("/api/loans")
    def create_loan():
        data = _json_body()
        if data is None:
            return _error(400, "Invalid request body")
        return jsonify(loan_store.create_loan(data)), 201

    @app.get("/api/loans/<loan_id>")
    def get_loan(loan_id):
        loan = loan_store.get_loan(loan_id)
        if loan is None:
            return _error(404, "loan not found")
        return jsonify(loan)

    @app.put("/api/loans/<loan_id>")
    def update_loan(loan_id):
        data = _json_body()
        if data is None:
            return _error(400, "Invalid request body")
        loan = loan_store.update_loan(loan_id, data)
        if loan is None:
            return _error(404, "loan not found")
        return jsonify(loan)

    @app.delete("/api/loans/<loan_id>")
    def delete_loan(loan_id):
        if not loan_store.delete_loan(loan_id):
            return _error(404, "loan not found")
        return "", 204

    @app.post("/api/loans/<loan_id>/special-payments")
    def create_special_payment(loan_id):
        data = _json_body()
        if data is None:
            return _error(400, "Invalid request body")
        payment = loan_store.add_special_payment(loan_id, data)
        if payment is None:
            return _error(404, "loan not found")
        return jsonify(payment), 201

    @app.delete("/api/loans/<loan_id>/special-payments/<payment_id>")
    def delete_special_payment(loan_id, payment_id):
        if not loan_store.delete_special_payment(loan_id, payment_id):
            return _error(404, "special payment not found")
        return "", 204

    @app.get("/api/loans/<loan_id>/schedule")
    def loan_schedule(loan_id):
        terms, error = load_terms_or_404(loan_id)
        if error:
            return error
        return jsonify(serialize_schedule(simulate(terms)))

    @app.get("/api/loans/<loan_id>/yearly")
    def loan_yearly(loan_id):
        terms, error = load_terms_or_404(loan_id)
        if error:
            return error
        years = aggregate_yearly(simulate(terms))
        return jsonify(
            [
                {
                    "year": y.year,
                    "interest": _money(y.interest),
                    "principal": _money(y.principal),
                    "specialPayment": _money(y.extra_principal),
                    "payment": _money(y.payment),
                    "endBalance": _money(y.end_balance),
                }
                for y in years
            ]
        )

    @app.get("/api/loans/<loan_id>/comparison")
    def loan_comparison(loan_id):
        terms, error = load_terms_or_404(loan_id)
        if error:
            return error
        return jsonify(serialize_comparison(compare(terms)))

    @app.get("/api/loans/<loan_id>/impacts")
    def loan_impacts(loan_id):
        terms, error = load_terms_or_404(loan_id)
        if error:
            return error
        return jsonify([serialize_impact(i) for i in attribute_all_impacts(terms)])

    @app.get("/api/loans/<loan_id>/special-payments/<payment_id>/impact")
    def payment_impact(loan_id, payment_id):
        terms, error = load_terms_or_404(loan_id)
        if error:
            return error
        if not any(p.id == payment_id for p in terms.extra_payments):
            return _error(404, "special payment not found")
        return jsonify(serialize_impact(attribute_impact(terms, payment_id)))

    return app


if __name__ == "__main__":
    logging.basicConfig(level=os.environ.get("BAUFI_LOG_LEVEL", "INFO"))
    print("Starting special payment calculator API...")
    create_app().run(host="0.0.0.0", port=int(os.environ.get("PORT", "8710")), debug=True)
