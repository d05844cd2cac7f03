"""Persistence layer for loans and their special payments.

This module keeps the loans managed through the web API in a relational
database. It defaults to SQLite for local development, but accepts any
SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL). Records are exchanged as
plain dictionaries with camelCase keys; :meth:`LoanStore.load_terms` turns a
stored loan into the ``LoanTerms`` consumed by the calculation engine.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text, create_engine, event, select
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from baufi_calc.data_models import ExtraPayment, FixedMonthlyAmount, LoanTerms, PercentageOfPrincipal
from baufi_calc.utils import parse_iso_date, to_decimal
from baufi_calc.validation import (
    REPAYMENT_PERCENTAGE,
    ValidationError,
    validate_loan,
    validate_special_payment,
)

logger = logging.getLogger(__name__)

Base = declarative_base()

LOAN_FIELDS = (
    "name",
    "amount",
    "interestRate",
    "startDate",
    "fixedInterestYears",
    "repaymentType",
    "repaymentValue",
)


class LoanModel(Base):
    __tablename__ = "loans"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    amount = Column(Float, nullable=False)
    interest_rate = Column(Float, nullable=False)
    start_date = Column(String(10), nullable=False)
    fixed_interest_years = Column(Integer, nullable=False)
    repayment_type = Column(String(16), nullable=False)
    repayment_value = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    special_payments = relationship(
        "SpecialPaymentModel",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="SpecialPaymentModel.date",
    )


class SpecialPaymentModel(Base):
    __tablename__ = "special_payments"

    id = Column(String(64), primary_key=True)
    loan_id = Column(String(64), ForeignKey("loans.id", ondelete="CASCADE"), index=True, nullable=False)
    date = Column(String(10), nullable=False)
    amount = Column(Float, nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    loan = relationship("LoanModel", back_populates="special_payments")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class LoanStore:
    """Database-backed loan store."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        if self._engine.dialect.name == "sqlite":
            event.listen(self._engine, "connect", _enable_sqlite_foreign_keys)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def list_loans(self) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            rows = session.execute(
                select(LoanModel).order_by(LoanModel.created_at.desc())
            ).scalars()
            return [self._loan_to_dict(row) for row in rows]

    def get_loan(self, loan_id: str) -> Optional[Dict[str, Any]]:
        with self._session_factory() as session:
            row = session.get(LoanModel, loan_id)
            return self._loan_to_dict(row) if row else None

    def create_loan(self, data: Dict[str, Any]) -> Dict[str, Any]:
        validate_loan(data)
        row = LoanModel(id=uuid4().hex)
        self._apply_loan_fields(row, data)
        with self._session_factory() as session:
            session.add(row)
            session.commit()
            logger.info("Created loan %s", row.id)
            return self._loan_to_dict(row)

    def update_loan(self, loan_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply a partial update; unknown keys are ignored."""
        changes = {k: v for k, v in changes.items() if k in LOAN_FIELDS}
        validate_loan(changes, partial=True)
        with self._session_factory() as session:
            row = session.get(LoanModel, loan_id)
            if row is None:
                return None
            self._apply_loan_fields(row, changes)
            session.commit()
            logger.info("Updated loan %s (%s)", loan_id, ", ".join(sorted(changes)) or "no fields")
            return self._loan_to_dict(row)

    def delete_loan(self, loan_id: str) -> bool:
        with self._session_factory() as session:
            row = session.get(LoanModel, loan_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            logger.info("Deleted loan %s", loan_id)
            return True

    def add_special_payment(self, loan_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        validate_special_payment(data)
        with self._session_factory() as session:
            if session.get(LoanModel, loan_id) is None:
                return None
            row = SpecialPaymentModel(
                id=uuid4().hex,
                loan_id=loan_id,
                date=data["date"],
                amount=float(data["amount"]),
                note=data.get("note") or None,
            )
            session.add(row)
            session.commit()
            logger.info("Added special payment %s to loan %s", row.id, loan_id)
            return self._payment_to_dict(row)

    def delete_special_payment(self, loan_id: str, payment_id: str) -> bool:
        with self._session_factory() as session:
            row = session.get(SpecialPaymentModel, payment_id)
            if row is None or row.loan_id != loan_id:
                return False
            session.delete(row)
            session.commit()
            logger.info("Deleted special payment %s from loan %s", payment_id, loan_id)
            return True

    def load_terms(self, loan_id: str) -> Optional[LoanTerms]:
        loan = self.get_loan(loan_id)
        return terms_from_record(loan) if loan else None

    @staticmethod
    def _apply_loan_fields(row: LoanModel, data: Dict[str, Any]) -> None:
        if "name" in data:
            row.name = data["name"].strip()
        if "amount" in data:
            row.amount = float(data["amount"])
        if "interestRate" in data:
            row.interest_rate = float(data["interestRate"])
        if "startDate" in data:
            row.start_date = data["startDate"]
        if "fixedInterestYears" in data:
            row.fixed_interest_years = int(data["fixedInterestYears"])
        if "repaymentType" in data:
            row.repayment_type = data["repaymentType"]
        if "repaymentValue" in data:
            row.repayment_value = float(data["repaymentValue"])

    @staticmethod
    def _payment_to_dict(row: SpecialPaymentModel) -> Dict[str, Any]:
        payment = {
            "id": row.id,
            "date": row.date,
            "amount": row.amount,
            "createdAt": row.created_at.isoformat(),
            "updatedAt": row.updated_at.isoformat(),
        }
        if row.note:
            payment["note"] = row.note
        return payment

    @classmethod
    def _loan_to_dict(cls, row: LoanModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "amount": row.amount,
            "interestRate": row.interest_rate,
            "startDate": row.start_date,
            "fixedInterestYears": row.fixed_interest_years,
            "repaymentType": row.repayment_type,
            "repaymentValue": row.repayment_value,
            "specialPayments": [cls._payment_to_dict(p) for p in row.special_payments],
            "createdAt": row.created_at.isoformat(),
            "updatedAt": row.updated_at.isoformat(),
        }


def terms_from_record(loan: Dict[str, Any]) -> LoanTerms:
    """Build ``LoanTerms`` from a loan dictionary as returned by the store."""
    value = to_decimal(loan["repaymentValue"])
    if loan["repaymentType"] == REPAYMENT_PERCENTAGE:
        repayment = PercentageOfPrincipal(value)
    else:
        repayment = FixedMonthlyAmount(value)
    payments = tuple(
        ExtraPayment(
            id=p["id"],
            date=parse_iso_date(p["date"]),
            amount=to_decimal(p["amount"]),
            note=p.get("note"),
        )
        for p in sorted(loan.get("specialPayments", []), key=lambda p: p["date"])
    )
    terms = LoanTerms(
        principal=to_decimal(loan["amount"]),
        annual_rate_percent=to_decimal(loan["interestRate"]),
        start_date=parse_iso_date(loan["startDate"]),
        fixed_rate_years=int(loan["fixedInterestYears"]),
        repayment=repayment,
        extra_payments=payments,
    )
    if terms.monthly_installment() <= 0:
        raise ValidationError("monthly installment must be > 0")
    return terms


def create_store_from_env(url: str | None) -> LoanStore:
    return LoanStore(url or "sqlite:///baufi_data.sqlite3")
