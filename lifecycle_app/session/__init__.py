"""
Session gate module.

Connects an account screen to the profile store, the hold countdown and
the reconciliation engine.
"""
