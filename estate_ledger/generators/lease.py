"""Lease generator."""

import random
from datetime import date

from dateutil.relativedelta import relativedelta

from estate_ledger.generators.base import BaseGenerator
from estate_ledger.models import Lease, LeaseStatus, Property


class LeaseGenerator(BaseGenerator):
    """Generate leases on a property."""

    # Monthly rent range in whole dollars
    RENT_RANGE = (900, 3500)

    def generate(self, prop: Property, reference_date: date, months_active: int = 6) -> Lease:
        """Generate an active lease that started ``months_active`` months ago.

        Parameters
        ----------
        prop : Property
            Leased property.
        reference_date : date
            Current date of the simulation.
        months_active : int
            Number of rent periods already elapsed.

        Returns
        -------
        Lease
            Lease starting on the first of the month.
        """
        start = reference_date.replace(day=1) - relativedelta(months=months_active)
        term = random.choice([6, 12, 12, 12, 24])
        end = start + relativedelta(months=max(term, months_active + 1)) - relativedelta(days=1)
        rent_dollars = random.randint(*self.RENT_RANGE) // 25 * 25

        return Lease(
            lease_id=self.fake.uuid4(),
            entity_id=prop.entity_id,
            property_id=prop.property_id,
            start_date=start,
            end_date=end,
            monthly_rent=rent_dollars * 100,
            tenant_ids=[self.fake.uuid4() for _ in range(random.choice([1, 1, 2]))],
            unit=f"{random.randint(1, 4)}{random.choice('ABCD')}" if random.random() < 0.6 else None,
            status=LeaseStatus.ACTIVE,
        )
