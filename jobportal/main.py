"""
Job Portal API - Main Application

FastAPI backend with:
- MongoDB for every entity (users, recruiters, posts, jobs, applications)
- JWT sessions in httpOnly cookies or Bearer headers
- Email / SMS verification codes

Run: uvicorn jobportal.main:app --reload
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobportal.api import api_router
from jobportal.core.config import get_settings
from jobportal.core.errors import AppError, InternalError
from jobportal.core.log import get_logger
from jobportal.db.mongodb import init_mongo_indexes, test_mongo_connection

log = get_logger(__name__)

settings = get_settings()

# Create FastAPI app
app = FastAPI(
    title="Job Portal API",
    description="""
    A job board with a social feed.

    ## Features
    - **Authentication**: cookie/Bearer JWT sessions for users and recruiters
    - **Verification**: email codes, phone codes, password reset
    - **Social**: posts, likes, comments, follows and notifications
    - **Jobs**: postings, search, applications and the hiring pipeline
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (cookies need explicit origins, not "*")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


# ============================================================
# ERROR HANDLERS
# ============================================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    fields = [
        {"field": ".".join(str(p) for p in err.get("loc", ()) if p != "body"), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    body = {"success": False, "error": "ValidationError", "message": "Invalid input", "fields": fields}
    return JSONResponse(status_code=400, content=body)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = InternalError(extra={"detail": str(exc)} if settings.expose_error_detail else None)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Startup event
@app.on_event("startup")
def startup_event():
    """Initialize MongoDB indexes on startup."""
    try:
        init_mongo_indexes()
    except Exception as e:
        log.error("MongoDB index initialization failed: %s", e)


@app.get("/", tags=["Health"])
def root():
    return {"status": "healthy", "app": "Job Portal API", "docs": "/docs"}


@app.get("/health", tags=["Health"])
def health_check():
    """Detailed health check."""
    mongo_ok = test_mongo_connection()
    return {
        "status": "healthy" if mongo_ok else "degraded",
        "mongodb": "connected" if mongo_ok else "disconnected",
    }
