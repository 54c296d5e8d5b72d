"""Scheduling board package.

This package contains the UI-free core of the obra board:
- Task records, the store and the filter/partition derivations.
- The drag reconciler (optimistic move, backend write, rollback by re-fetch).
- The SQLAlchemy-backed repository and the in-process change feed.
"""
