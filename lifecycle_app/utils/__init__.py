"""
Utility functions module.

Time Semantics:
- All profile timestamps are aware UTC datetimes
- Naive timestamps from the store are read as UTC
- The wall clock is only read at the session gate boundary; the
  reconciliation engine and hold timer receive "now" explicitly
"""
