"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from jobportal.api.routes.auth_routes import router as auth_router
from jobportal.api.routes.user_routes import router as user_router
from jobportal.api.routes.post_routes import router as post_router
from jobportal.api.routes.recruiter_routes import router as recruiter_router
from jobportal.api.routes.job_routes import router as job_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(post_router)
api_router.include_router(recruiter_router)
api_router.include_router(job_router)
