"""
Lifecycle App - Account Lifecycle Gate

Tracks an account through approval review and its active/hold/suspend
status, reconciles fetched and pushed profile updates, runs the hold
countdown, and decides which screen the account holder may see.
"""

__version__ = "0.1.0"
__author__ = "Lifecycle Team"
