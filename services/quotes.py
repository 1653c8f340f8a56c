"""Loan calculator: repayment breakdown for a prospective application."""
from __future__ import annotations

from schemas.application import QuoteResponse
from services.countries import get_country
from services.state_machine import compute_monthly_payment, validate_loan_parameters


def quote(country_code: str, amount: float, months: int) -> QuoteResponse:
    validate_loan_parameters(country_code, amount, months)
    country = get_country(country_code)
    monthly = compute_monthly_payment(amount, months)
    total = monthly * months
    return QuoteResponse(
        country=country.code,
        currency=country.currency,
        amount=amount,
        months=months,
        monthly_payment=round(monthly, 2),
        total_interest=round(total - amount, 2),
        total_repayment=round(total, 2),
        reference_amount=round(amount / country.exchange_rate, 2),
    )
