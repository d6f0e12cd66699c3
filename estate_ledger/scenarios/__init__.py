"""Scenarios for generating realistic ledger data sets."""

from estate_ledger.scenarios.rent_roll import RentRollScenario

__all__ = ["RentRollScenario"]
