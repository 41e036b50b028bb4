"""
Core module - configuration, logging, errors and security.
"""
