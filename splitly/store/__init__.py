"""Client-side ledger state."""

from splitly.store.ledger_store import LedgerStore

__all__ = ["LedgerStore"]
