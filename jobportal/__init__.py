"""
Job Portal
A job board with a social feed, backed by MongoDB.

Architecture:
- core: config, logging, errors, JWT/password security, session dependencies
- services: credential store, verification, relationships, notifications,
  posts, jobs and outbound delivery
- api: FastAPI routers mounted under /api
"""

__version__ = "1.0.0"
