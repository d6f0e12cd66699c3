"""Synthetic data generators for demos and load tests."""

from estate_ledger.generators.base import BaseGenerator
from estate_ledger.generators.entity import EntityGenerator, PropertyGenerator
from estate_ledger.generators.lease import LeaseGenerator
from estate_ledger.generators.mortgage import MortgageGenerator, MortgageTerms

__all__ = [
    "BaseGenerator",
    "EntityGenerator",
    "LeaseGenerator",
    "MortgageGenerator",
    "MortgageTerms",
    "PropertyGenerator",
]
