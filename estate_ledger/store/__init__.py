"""In-memory data store for ledger records."""

from estate_ledger.store.ledger import LedgerStore

__all__ = ["LedgerStore"]
