"""
Schemas module - Request/Response schemas for API endpoints.

All schemas live in jobportal.schemas.schemas.
"""
