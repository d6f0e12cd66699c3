"""Owning entity and property generators."""

import random
from datetime import datetime, timedelta

from estate_ledger.generators.base import BaseGenerator
from estate_ledger.models import (
    Address,
    EntityStatus,
    LateFeeSettings,
    LateFeeType,
    OwningEntity,
    Property,
)


class EntityGenerator(BaseGenerator):
    """Generate owning entities (LLCs) with late-fee policies."""

    # (fee type, amount, max amount); flat amounts in cents, percentages in percent
    LATE_FEE_POLICIES = [
        (LateFeeType.FLAT, 5000, None),
        (LateFeeType.FLAT, 7500, None),
        (LateFeeType.PERCENTAGE, 5, 10000),
        (LateFeeType.PERCENTAGE, 10, 15000),
    ]

    def generate(self, late_fee_rate: float = 0.8) -> OwningEntity:
        """Generate an entity.

        Parameters
        ----------
        late_fee_rate : float
            Probability that the entity charges late fees.

        Returns
        -------
        OwningEntity
            Generated entity.
        """
        fee_type, amount, max_amount = random.choice(self.LATE_FEE_POLICIES)
        settings = LateFeeSettings(
            enabled=random.random() < late_fee_rate,
            fee_type=fee_type,
            amount=amount,
            max_amount=max_amount,
            grace_days=random.choice([3, 5, 5, 5, 10]),
        )
        return OwningEntity(
            entity_id=self.fake.uuid4(),
            legal_name=f"{self.fake.last_name()} {random.choice(['Holdings', 'Properties', 'Realty'])} LLC",
            status=EntityStatus.ACTIVE,
            late_fee_settings=settings,
            created_at=datetime.now() - timedelta(days=random.randint(365, 3650)),
        )


class PropertyGenerator(BaseGenerator):
    """Generate rental properties."""

    def generate(self, entity_id: str) -> Property:
        """Generate a property owned by ``entity_id``."""
        address = Address(
            street1=self.fake.street_address(),
            city=self.fake.city(),
            state=self.fake.state_abbr(include_territories=False),
            postal_code=self.fake.zipcode(),
        )
        return Property(
            property_id=self.fake.uuid4(),
            entity_id=entity_id,
            name=f"{self.fake.street_name()} {random.choice(['Apartments', 'Residences', 'Duplex', 'House'])}",
            address=address,
            created_at=datetime.now() - timedelta(days=random.randint(30, 3650)),
        )
