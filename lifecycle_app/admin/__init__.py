"""
Operator actions module.

Approve, reject, hold, suspend and lift updates issued by reviewers and
operators.
"""
