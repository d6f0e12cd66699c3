"""Fixed-payment amortization math.

Every function here is pure: it reads only its arguments, never the store
or the wall clock. Balances and payments are integer cents; the periodic
rate is a ``Decimal`` and each interest accrual is rounded half up with
:func:`estate_ledger.money.round_cents`.

The final payment of a schedule absorbs a residual balance smaller than one
regular payment (the drift left by rounding the payment to whole cents), so
a schedule built from :func:`monthly_payment` ends at exactly zero.
"""

import logging
from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from estate_ledger.models import (
    AmortizationEntry,
    ExtraPaymentSavings,
    Mortgage,
    MortgagePayment,
    MortgagePaymentStatus,
    MortgageSummary,
)
from estate_ledger.money import HUNDRED, ONE, percent_of, round_cents, to_decimal

logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12

# Payments that actually moved money
SETTLED_PAYMENT_STATUSES = (MortgagePaymentStatus.COMPLETED, MortgagePaymentStatus.LATE)


def monthly_rate(annual_rate_percent: Decimal | int | float | str) -> Decimal:
    """Periodic rate for an annual percentage, e.g. ``6.5`` -> ``0.0054166...``."""
    rate = to_decimal(annual_rate_percent)
    if rate < 0:
        raise ValueError(f"Interest rate must be non-negative, got {rate}")
    return rate / HUNDRED / MONTHS_PER_YEAR


def monthly_payment(
    principal: int,
    annual_rate_percent: Decimal | int | float | str,
    term_months: int,
) -> int:
    """Level principal-and-interest payment that retires ``principal`` in ``term_months``.

    Parameters
    ----------
    principal : int
        Loan amount in cents.
    annual_rate_percent : Decimal | int | float | str
        Annual interest rate as a percentage (``6.5`` for 6.5%).
    term_months : int
        Number of monthly payments.

    Returns
    -------
    int
        Payment in cents, rounded once.
    """
    if term_months <= 0:
        raise ValueError(f"term_months must be positive, got {term_months}")
    if principal < 0:
        raise ValueError(f"principal must be non-negative, got {principal}")

    r = monthly_rate(annual_rate_percent)
    if r == 0:
        return round_cents(Decimal(principal) / term_months)

    factor = (ONE + r) ** term_months
    return round_cents(Decimal(principal) * r * factor / (factor - ONE))


def months_between(start: date, end: date) -> int:
    """Whole calendar months from ``start`` to ``end``."""
    delta = relativedelta(end, start)
    return delta.years * MONTHS_PER_YEAR + delta.months


def _run_schedule(
    balance: int,
    anchor: date,
    payment: int,
    rate: Decimal,
    max_payments: int,
    final_payment_number: int | None,
) -> list[AmortizationEntry]:
    entries: list[AmortizationEntry] = []
    cumulative_interest = 0
    number = 0

    while balance > 0 and number < max_payments:
        number += 1
        interest = round_cents(Decimal(balance) * rate)
        principal = payment - interest
        if principal > balance:
            principal = balance
        elif number == final_payment_number and 0 < balance - principal <= payment:
            principal = balance

        balance -= principal
        cumulative_interest += interest
        entries.append(
            AmortizationEntry(
                payment_number=number,
                payment_date=anchor + relativedelta(months=number - 1),
                payment=principal + interest,
                principal=principal,
                interest=interest,
                balance=balance,
                cumulative_interest=cumulative_interest,
            )
        )

    return entries


def amortization_schedule(mortgage: Mortgage) -> list[AmortizationEntry]:
    """Full schedule from origination: ``original_amount`` from ``first_payment_date``.

    Stops at zero balance or after ``term_months`` payments.
    """
    return _run_schedule(
        balance=mortgage.original_amount,
        anchor=mortgage.first_payment_date,
        payment=mortgage.monthly_payment,
        rate=monthly_rate(mortgage.interest_rate),
        max_payments=mortgage.term_months,
        final_payment_number=mortgage.term_months,
    )


def remaining_amortization(mortgage: Mortgage, payment: int | None = None) -> list[AmortizationEntry]:
    """Projected schedule from ``current_balance`` and ``next_payment_date``.

    Parameters
    ----------
    mortgage : Mortgage
        Loan in its current state.
    payment : int | None
        Payment to project with; defaults to ``mortgage.monthly_payment``.

    Returns
    -------
    list[AmortizationEntry]
        At most ``2 * term_months`` entries. A last entry with a positive
        balance means the payment cannot retire the loan.
    """
    if mortgage.next_payment_date is None or mortgage.current_balance <= 0:
        return []

    payment = mortgage.monthly_payment if payment is None else payment
    cap = 2 * mortgage.term_months
    remaining_term = months_between(mortgage.next_payment_date, mortgage.maturity_date) + 1

    entries = _run_schedule(
        balance=mortgage.current_balance,
        anchor=mortgage.next_payment_date,
        payment=payment,
        rate=monthly_rate(mortgage.interest_rate),
        max_payments=cap,
        final_payment_number=remaining_term if remaining_term > 0 else None,
    )

    if entries and entries[-1].balance > 0:
        logger.warning(
            "Mortgage %s does not amortize: balance %d cents left after %d payments of %d",
            mortgage.mortgage_id,
            entries[-1].balance,
            len(entries),
            payment,
        )
    return entries


def extra_payment_savings(
    mortgage: Mortgage,
    extra_monthly: int,
    baseline: list[AmortizationEntry] | None = None,
) -> ExtraPaymentSavings:
    """Compare the remaining schedule with and without an extra monthly amount.

    Parameters
    ----------
    mortgage : Mortgage
        Loan in its current state. Not modified.
    extra_monthly : int
        Additional cents paid every month.
    baseline : list[AmortizationEntry] | None
        Precomputed ``remaining_amortization(mortgage)``.

    Returns
    -------
    ExtraPaymentSavings
        Interest and months saved, and the new payoff date.
    """
    if extra_monthly < 0:
        raise ValueError(f"extra_monthly must be non-negative, got {extra_monthly}")

    if baseline is None:
        baseline = remaining_amortization(mortgage)
    accelerated = remaining_amortization(mortgage, payment=mortgage.monthly_payment + extra_monthly)

    baseline_interest = baseline[-1].cumulative_interest if baseline else 0
    accelerated_interest = accelerated[-1].cumulative_interest if accelerated else 0

    return ExtraPaymentSavings(
        extra_monthly=extra_monthly,
        interest_saved=baseline_interest - accelerated_interest,
        months_saved=len(baseline) - len(accelerated),
        new_payoff_date=accelerated[-1].payment_date if accelerated else mortgage.next_payment_date,
    )


def mortgage_summary(
    mortgage: Mortgage,
    payments: Iterable[MortgagePayment],
    today: date,
    extra_monthly: int | None = None,
) -> MortgageSummary:
    """Progress to date and projections for a mortgage as of ``today``."""
    settled = [p for p in payments if p.status in SETTLED_PAYMENT_STATUSES]
    principal_paid = sum(p.principal_amount for p in settled)
    interest_paid = sum(p.interest_amount for p in settled)

    remaining = remaining_amortization(mortgage)
    remaining_interest = remaining[-1].cumulative_interest if remaining else 0
    total_interest = interest_paid + remaining_interest

    days_until = None
    if mortgage.next_payment_date is not None:
        days_until = (mortgage.next_payment_date - today).days

    savings = None
    if extra_monthly:
        savings = extra_payment_savings(mortgage, extra_monthly, baseline=remaining)

    return MortgageSummary(
        current_balance=mortgage.current_balance,
        monthly_payment=mortgage.monthly_payment,
        next_payment_date=mortgage.next_payment_date,
        days_until_payment=days_until,
        principal_paid=principal_paid,
        interest_paid=interest_paid,
        percent_paid_off=percent_of(mortgage.original_amount - mortgage.current_balance, mortgage.original_amount),
        remaining_payments=len(remaining),
        total_cost=mortgage.original_amount + total_interest,
        total_interest=total_interest,
        remaining_interest=remaining_interest,
        payoff_date=remaining[-1].payment_date if remaining else mortgage.maturity_date,
        extra_payment_savings=savings,
    )
