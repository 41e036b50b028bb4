"""
Utilities shared across services.
"""
