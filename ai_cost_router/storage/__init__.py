"""Storage layer for the usage ledger."""
