"""Financial ledger for multi-entity property management."""

from estate_ledger.service import LedgerService

__version__ = "0.1.0"

__all__ = ["LedgerService", "__version__"]
