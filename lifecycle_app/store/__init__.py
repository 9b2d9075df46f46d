"""
Profile store module.

Abstract contracts for the profile store and auth session, plus an
in-process implementation of both.
"""
