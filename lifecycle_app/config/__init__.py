"""
Configuration module.

Typed defaults, YAML overrides and validation for timer, activation,
routing and logging parameters.
"""
