"""
Services module - domain logic over MongoDB.

Each service takes the database (and settings, where needed) in its
constructor; routes get them through jobportal.api.deps.
"""
