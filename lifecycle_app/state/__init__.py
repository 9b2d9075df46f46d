"""
Account lifecycle state machine module.

Status vocabulary and invariants, the hold countdown, and the
reconciliation of fetched, pushed and user-initiated events into display
state and redirect decisions.
"""
