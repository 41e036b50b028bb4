"""
Recruiter Routes

POST /recruiters/auth/signup - Register recruiter, email verification code
POST /recruiters/auth/login - Login (verified recruiters only)
POST /recruiters/auth/logout - Clear session cookie
POST /recruiters/auth/verify-otp - Verify email
POST /recruiters/auth/resend-otp - Send a fresh verification code
POST /recruiters/auth/forgot-password - Email a reset link
POST /recruiters/auth/reset-password - Set a new password with the link token
GET /recruiters/me - Get own profile
PATCH /recruiters/me - Update own profile
GET /recruiters/applications - Applications to own jobs
PATCH /recruiters/applications/status - Move an application through the pipeline
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Response

from jobportal.api.deps import (
    get_dispatcher, get_job_service, get_recruiter_store, get_recruiter_verification,
)
from jobportal.core.auth import clear_auth_cookie, get_current_recruiter, get_token_issuer, set_auth_cookie
from jobportal.core.config import Settings, get_settings
from jobportal.core.errors import InvalidOperation, NotFound, Unauthorized
from jobportal.core.log import get_logger
from jobportal.core.security import ROLE_RECRUITER, TokenIssuer
from jobportal.schemas.schemas import (
    ApplicationStatusUpdate, ForgotPasswordRequest, MessageResponse, RecruiterLogin,
    RecruiterResendOtp, RecruiterResetPassword, RecruiterSignup, RecruiterUpdate, RecruiterVerifyOtp,
)
from jobportal.services.credential_store import PrincipalStore, serialize_principal
from jobportal.services.delivery import DeliveryDispatcher, password_reset_link_email, verification_email
from jobportal.services.jobs import JobService
from jobportal.services.verification import PURPOSE_EMAIL_VERIFICATION, VerificationService

log = get_logger(__name__)

router = APIRouter(prefix="/recruiters", tags=["Recruiters"])


# ============================================================
# AUTH
# ============================================================

@router.post("/auth/signup", status_code=201)
def signup(
    request: RecruiterSignup,
    background_tasks: BackgroundTasks,
    store: PrincipalStore = Depends(get_recruiter_store),
    verification: VerificationService = Depends(get_recruiter_verification),
    dispatcher: DeliveryDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """Create the account; it cannot log in until the emailed code is verified."""
    recruiter = store.create_principal(request.model_dump())

    code = verification.issue_otp(store.get_by_id(recruiter["id"]), PURPOSE_EMAIL_VERIFICATION)
    dispatcher.dispatch(background_tasks, verification_email(recruiter["email"], code, settings.otp_ttl_minutes))

    return {
        "success": True,
        "message": "Account created successfully! Please check your email for the verification code.",
        "recruiter": recruiter,
    }


@router.post("/auth/login")
def login(
    request: RecruiterLogin,
    response: Response,
    store: PrincipalStore = Depends(get_recruiter_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
):
    try:
        recruiter = store.find_by_identifier(request.email)
    except NotFound:
        raise Unauthorized("Invalid email or password")

    if not store.verify_password(recruiter, request.password):
        raise Unauthorized("Invalid email or password")
    if not recruiter.get("is_verified"):
        raise Unauthorized("Please verify your email address before logging in.")

    token = issuer.issue(str(recruiter["_id"]), ROLE_RECRUITER)
    set_auth_cookie(response, token, settings, ROLE_RECRUITER)
    log.info("Recruiter %s logged in", recruiter["_id"])
    return {"success": True, "token": token, "recruiter": serialize_principal(recruiter)}


@router.post("/auth/logout", response_model=MessageResponse)
def logout(
    response: Response,
    recruiter: dict = Depends(get_current_recruiter),
    settings: Settings = Depends(get_settings),
):
    clear_auth_cookie(response, settings, ROLE_RECRUITER)
    return MessageResponse(message="Logged out successfully")


@router.post("/auth/verify-otp")
def verify_otp(
    request: RecruiterVerifyOtp,
    verification: VerificationService = Depends(get_recruiter_verification),
):
    recruiter = verification.consume_otp(request.email, request.otp, PURPOSE_EMAIL_VERIFICATION)
    return {
        "success": True,
        "message": "Email verified successfully! You can now log in to your account.",
        "recruiter": recruiter,
    }


@router.post("/auth/resend-otp", response_model=MessageResponse)
def resend_otp(
    request: RecruiterResendOtp,
    store: PrincipalStore = Depends(get_recruiter_store),
    verification: VerificationService = Depends(get_recruiter_verification),
    dispatcher: DeliveryDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """Sent inline: a provider failure is reported (502) instead of swallowed."""
    recruiter = store.find_by_identifier(request.email)
    if recruiter.get("is_verified"):
        raise InvalidOperation("Email is already verified")

    code = verification.issue_otp(recruiter, PURPOSE_EMAIL_VERIFICATION)
    dispatcher.send_now(verification_email(recruiter["email"], code, settings.otp_ttl_minutes))
    return MessageResponse(message="A new verification code has been sent to your email.")


@router.post("/auth/forgot-password", response_model=MessageResponse)
def forgot_password(
    request: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    store: PrincipalStore = Depends(get_recruiter_store),
    verification: VerificationService = Depends(get_recruiter_verification),
    dispatcher: DeliveryDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """Same answer whether or not the account exists."""
    try:
        recruiter = store.find_by_identifier(request.email)
    except NotFound:
        recruiter = None

    if recruiter is not None:
        token = verification.issue_reset_token(recruiter)
        reset_url = f"{settings.frontend_url.rstrip('/')}/reset-password?token={token}"
        dispatcher.dispatch(
            background_tasks,
            password_reset_link_email(recruiter["email"], reset_url, settings.reset_token_ttl_minutes),
        )

    return MessageResponse(message="If an account with that email exists, a password reset link has been sent.")


@router.post("/auth/reset-password", response_model=MessageResponse)
def reset_password(
    request: RecruiterResetPassword,
    verification: VerificationService = Depends(get_recruiter_verification),
):
    verification.consume_reset_token(request.token, request.password)
    return MessageResponse(message="Password reset successful! You can now log in with your new password.")


# ============================================================
# PROFILE
# ============================================================

@router.get("/me")
def get_me(recruiter: dict = Depends(get_current_recruiter)):
    return {"success": True, "recruiter": serialize_principal(recruiter)}


@router.patch("/me")
def update_me(
    request: RecruiterUpdate,
    recruiter: dict = Depends(get_current_recruiter),
    store: PrincipalStore = Depends(get_recruiter_store),
):
    updated = store.update_profile(recruiter["_id"], request.model_dump(exclude_unset=True))
    return {"success": True, "recruiter": updated}


# ============================================================
# APPLICATIONS
# ============================================================

@router.get("/applications")
def get_applications(
    recruiter: dict = Depends(get_current_recruiter),
    jobs: JobService = Depends(get_job_service),
):
    """All applications to this recruiter's jobs, newest first."""
    return {"success": True, "applications": jobs.recruiter_applications(recruiter["_id"])}


@router.patch("/applications/status")
def update_application_status(
    request: ApplicationStatusUpdate,
    recruiter: dict = Depends(get_current_recruiter),
    jobs: JobService = Depends(get_job_service),
):
    """The applicant is notified of the new status."""
    application = jobs.update_status(request.application_id, recruiter, request.status.value)
    return {"success": True, "message": "Application status updated", "application": application}
