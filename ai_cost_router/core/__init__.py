"""
Core modules for AI Cost Router.

This package contains the model catalog, the cost-aware selector, and the
usage ledger with its reporting queries.
"""
