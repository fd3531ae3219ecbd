"""SpendLog: trip-scoped multi-currency ledger with optimistic sync."""

__version__ = "0.1.0"
