"""Tests for synthetic data generators."""

from datetime import date
from decimal import Decimal

from estate_ledger.generators import (
    EntityGenerator,
    LeaseGenerator,
    MortgageGenerator,
    MortgageTerms,
    PropertyGenerator,
)
from estate_ledger.models import EntityStatus, LateFeeType, LeaseStatus, MortgageType


class TestEntityGenerator:
    """Tests for EntityGenerator."""

    def test_generate(self, seed: int) -> None:
        """Test entity generation."""
        entity = EntityGenerator(seed=seed).generate()

        assert entity.legal_name.endswith(" LLC")
        assert entity.status is EntityStatus.ACTIVE
        assert entity.late_fee_settings.fee_type in (LateFeeType.FLAT, LateFeeType.PERCENTAGE)
        assert entity.late_fee_settings.grace_days in (3, 5, 10)

    def test_late_fee_rate(self, seed: int) -> None:
        gen = EntityGenerator(seed=seed)

        assert all(gen.generate(late_fee_rate=1.0).late_fee_settings.enabled for _ in range(5))
        assert not any(gen.generate(late_fee_rate=0.0).late_fee_settings.enabled for _ in range(5))

    def test_reproducible(self, seed: int) -> None:
        """Test that the same seed yields the same entity."""
        first = EntityGenerator(seed=seed).generate()
        second = EntityGenerator(seed=seed).generate()

        assert first.entity_id == second.entity_id
        assert first.legal_name == second.legal_name
        assert first.late_fee_settings == second.late_fee_settings


class TestPropertyGenerator:
    """Tests for PropertyGenerator."""

    def test_generate(self, seed: int) -> None:
        prop = PropertyGenerator(seed=seed).generate("ent-001")

        assert prop.entity_id == "ent-001"
        assert prop.address.street1
        assert len(prop.address.state) == 2
        assert prop.address.country == "US"


class TestLeaseGenerator:
    """Tests for LeaseGenerator."""

    def test_generate(self, seed: int) -> None:
        """Test the lease covers the elapsed months and the reference date."""
        prop = PropertyGenerator(seed=seed).generate("ent-001")

        lease = LeaseGenerator(seed=seed).generate(prop, date(2024, 3, 15), months_active=6)

        assert lease.start_date == date(2023, 9, 1)
        assert lease.end_date > date(2024, 3, 15)
        assert lease.entity_id == "ent-001"
        assert lease.property_id == prop.property_id
        assert lease.status is LeaseStatus.ACTIVE
        assert 90000 <= lease.monthly_rent <= 350000
        assert lease.monthly_rent % 2500 == 0
        assert 1 <= len(lease.tenant_ids) <= 2


class TestMortgageGenerator:
    """Tests for MortgageGenerator."""

    def test_generate(self, seed: int) -> None:
        terms = MortgageGenerator(seed=seed).generate(date(2024, 3, 15), payments_made=12)

        assert isinstance(terms, MortgageTerms)
        assert terms.first_payment_date == date(2023, 4, 1)
        assert terms.mortgage_type in (MortgageType.FIXED, MortgageType.ADJUSTABLE, MortgageType.BALLOON)
        assert terms.term_months in (180, 240, 360)
        assert 12000000 <= terms.original_amount <= 90000000
        assert (terms.interest_rate * 8) == (terms.interest_rate * 8).to_integral_value()
        assert Decimal("5") <= terms.interest_rate <= Decimal("8")
        assert len(terms.loan_number) == 10

    def test_escrow_included(self, seed: int) -> None:
        gen = MortgageGenerator(seed=seed)

        for _ in range(20):
            terms = gen.generate(date(2024, 3, 15))
            assert terms.escrow_included is (terms.escrow_amount is not None)
            if terms.escrow_amount is not None:
                assert terms.escrow_amount == (terms.property_tax_annual + terms.insurance_annual) // 12
