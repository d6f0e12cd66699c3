"""Mortgage terms generator."""

import random
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from estate_ledger.generators.base import BaseGenerator
from estate_ledger.models import MortgageType


@dataclass
class MortgageTerms:
    """Loan terms used to originate a mortgage."""

    lender: str
    loan_number: str
    mortgage_type: MortgageType
    original_amount: int
    interest_rate: Decimal
    term_months: int
    first_payment_date: date
    escrow_amount: int | None = None
    property_tax_annual: int | None = None
    insurance_annual: int | None = None

    @property
    def escrow_included(self) -> bool:
        return self.escrow_amount is not None


class MortgageGenerator(BaseGenerator):
    """Generate realistic US residential mortgage terms."""

    LENDERS = [
        "Wells Fargo",
        "Chase",
        "Bank of America",
        "Rocket Mortgage",
        "U.S. Bank",
        "PNC",
        "Truist",
    ]

    # Annual rate range (percent) by type
    RATE_RANGES = {
        MortgageType.FIXED: (5.5, 7.5),
        MortgageType.ADJUSTABLE: (5.0, 6.75),
        MortgageType.BALLOON: (6.0, 8.0),
    }

    def generate(self, reference_date: date, payments_made: int | None = None) -> MortgageTerms:
        """Generate terms for a loan already ``payments_made`` payments in.

        Parameters
        ----------
        reference_date : date
            Current date of the simulation.
        payments_made : int | None
            Number of payments already due; random when None.

        Returns
        -------
        MortgageTerms
            Generated terms. Amounts in cents.
        """
        mortgage_type = random.choices(
            list(self.RATE_RANGES), weights=[0.8, 0.15, 0.05], k=1
        )[0]
        low, high = self.RATE_RANGES[mortgage_type]
        rate = Decimal(str(round(random.uniform(low, high) * 8) / 8))
        term_months = random.choice([180, 240, 360, 360, 360])
        original = random.randint(120, 900) * 1000 * 100

        if payments_made is None:
            payments_made = random.randint(0, 36)
        first_payment = reference_date.replace(day=1) - relativedelta(months=payments_made - 1)

        escrow = None
        tax = insurance = None
        if random.random() < 0.7:
            tax = original * random.randint(8, 20) // 1000
            insurance = random.randint(9, 25) * 100 * 100
            escrow = (tax + insurance) // 12

        return MortgageTerms(
            lender=random.choice(self.LENDERS),
            loan_number=self.fake.bothify("##########"),
            mortgage_type=mortgage_type,
            original_amount=original,
            interest_rate=rate,
            term_months=term_months,
            first_payment_date=first_payment,
            escrow_amount=escrow,
            property_tax_annual=tax,
            insurance_annual=insurance,
        )
