"""
Profile record parsing module.

Converts flat profile store records into validated Profile snapshots and
back.
"""
