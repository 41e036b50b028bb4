"""
Authentication Routes (users)

POST /auth/register - Register new user, set session cookie
POST /auth/login - Login with email or username
POST /auth/logout - Clear session cookie
GET /auth/me - Get current user info
POST /auth/forgot-password - Email a password reset code
POST /auth/verify-otp - Verify email or reset password with a code
POST /auth/change-password - Change password (re-issues the session)
POST /auth/send-otp - Text a code to a new phone number
POST /auth/update-phone - Confirm the new phone number
POST /auth/oauth/import - Import an account from an identity provider
"""

import secrets

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Response

from jobportal.api.deps import get_dispatcher, get_user_store, get_user_verification
from jobportal.core.auth import clear_auth_cookie, get_current_user, get_token_issuer, set_auth_cookie
from jobportal.core.config import Settings, get_settings
from jobportal.core.errors import NotFound, Unauthorized
from jobportal.core.log import get_logger
from jobportal.core.security import ROLE_USER, TokenIssuer
from jobportal.schemas.schemas import (
    ChangePasswordRequest, ForgotPasswordRequest, LoginRequest, MessageResponse,
    OAuthImportRequest, RegisterRequest, SendOtpRequest, UpdatePhoneRequest, VerifyOtpRequest,
)
from jobportal.services.credential_store import PrincipalStore, serialize_principal
from jobportal.services.delivery import (
    DeliveryDispatcher, password_reset_otp_email, phone_otp_sms, verification_email,
)
from jobportal.services.verification import (
    PURPOSE_EMAIL_VERIFICATION, PURPOSE_PASSWORD_RESET, PURPOSE_PHONE_UPDATE, VerificationService,
)

log = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def start_session(response: Response, user: dict, issuer: TokenIssuer, settings: Settings) -> str:
    """Issue a user token and attach it as the session cookie."""
    token = issuer.issue(str(user.get("id") or user["_id"]), ROLE_USER)
    set_auth_cookie(response, token, settings, ROLE_USER)
    return token


@router.post("/register", status_code=201)
def register(
    request: RegisterRequest,
    response: Response,
    background_tasks: BackgroundTasks,
    store: PrincipalStore = Depends(get_user_store),
    verification: VerificationService = Depends(get_user_verification),
    dispatcher: DeliveryDispatcher = Depends(get_dispatcher),
    issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
):
    """
    Register a new user account and log it in.

    A verification code is emailed in the background; the account works
    before the email is verified.
    """
    user = store.create_principal(request.model_dump(exclude_none=True))

    code = verification.issue_otp(store.get_by_id(user["id"]), PURPOSE_EMAIL_VERIFICATION)
    dispatcher.dispatch(background_tasks, verification_email(user["email"], code, settings.otp_ttl_minutes))

    token = start_session(response, user, issuer, settings)
    return {"success": True, "message": "Account created successfully", "user": user, "token": token}


@router.post("/login")
def login(
    request: LoginRequest,
    response: Response,
    store: PrincipalStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
):
    """
    Login with email or username.

    Token is set as an httpOnly cookie and also returned for
    `Authorization: Bearer <token>` clients.
    """
    try:
        user = store.find_by_identifier(request.identifier)
    except NotFound:
        raise Unauthorized("Incorrect email/username or password")

    if not store.verify_password(user, request.password):
        raise Unauthorized("Incorrect email/username or password")

    token = start_session(response, user, issuer, settings)
    log.info("User %s logged in", user["_id"])
    return {
        "success": True,
        "message": f"Welcome back {user.get('fullname') or user['username']}",
        "user": serialize_principal(user),
        "token": token,
    }


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    user: dict = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
):
    clear_auth_cookie(response, settings, ROLE_USER)
    return MessageResponse(message="Logged out successfully")


@router.get("/me")
def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    return {"success": True, "user": serialize_principal(user)}


# ============================================================
# PASSWORD RECOVERY / VERIFICATION
# ============================================================

@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    request: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    store: PrincipalStore = Depends(get_user_store),
    verification: VerificationService = Depends(get_user_verification),
    dispatcher: DeliveryDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """Email a reset code. The answer is the same whether or not the account exists."""
    try:
        user = store.find_by_identifier(request.email)
    except NotFound:
        user = None

    if user is not None:
        code = verification.issue_otp(user, PURPOSE_PASSWORD_RESET)
        dispatcher.dispatch(background_tasks, password_reset_otp_email(user["email"], code, settings.otp_ttl_minutes))

    return MessageResponse(message="If an account with that email exists, a reset code has been sent.")


@router.post("/verify-otp")
def verify_otp(
    request: VerifyOtpRequest,
    verification: VerificationService = Depends(get_user_verification),
):
    """
    Consume a code.

    purpose=email_verification marks the email verified;
    purpose=password_reset also requires new_password.
    """
    user = verification.consume_otp(
        request.identifier,
        request.otp,
        request.purpose.value,
        new_password=request.new_password,
    )
    if request.purpose.value == PURPOSE_PASSWORD_RESET:
        message = "Password reset successfully. Please log in."
    else:
        message = "Email verified successfully"
    return {"success": True, "message": message, "user": user}


@router.post("/change-password")
def change_password(
    request: ChangePasswordRequest,
    response: Response,
    user: dict = Depends(get_current_user),
    store: PrincipalStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
):
    """Every other session is invalidated; this one gets a fresh token."""
    if not store.verify_password(user, request.current_password):
        raise Unauthorized("Current password is incorrect")

    store.update_password(user["_id"], request.new_password)
    token = start_session(response, user, issuer, settings)
    return {"success": True, "message": "Password updated successfully", "token": token}


# ============================================================
# PHONE NUMBER
# ============================================================

@router.post("/send-otp", response_model=MessageResponse)
def send_phone_otp(
    request: SendOtpRequest,
    user: dict = Depends(get_current_user),
    verification: VerificationService = Depends(get_user_verification),
    dispatcher: DeliveryDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """Text a code to the new number. Provider failure -> 502."""
    code = verification.issue_otp(user, PURPOSE_PHONE_UPDATE, pending_phone=request.phone_number)
    dispatcher.send_now(phone_otp_sms(request.phone_number, code, settings.otp_ttl_minutes))
    return MessageResponse(message="OTP sent to your phone number")


@router.post("/update-phone")
def update_phone(
    request: UpdatePhoneRequest,
    user: dict = Depends(get_current_user),
    verification: VerificationService = Depends(get_user_verification),
):
    updated = verification.consume_otp(user["email"], request.otp, PURPOSE_PHONE_UPDATE)
    return {"success": True, "message": "Phone number updated successfully", "user": updated}


# ============================================================
# IDENTITY PROVIDER IMPORT
# ============================================================

@router.post("/oauth/import")
def oauth_import(
    request: OAuthImportRequest,
    response: Response,
    x_import_secret: str = Header("", alias="X-Import-Secret"),
    store: PrincipalStore = Depends(get_user_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
):
    """
    Bring an OAuth-provider account into the local user shape and log it in.

    Called by the identity-provider bridge, authenticated with a shared
    secret. Disabled when no secret is configured.
    """
    expected = settings.oauth_import_secret
    if not expected or not secrets.compare_digest(x_import_secret or "", expected):
        raise Unauthorized("Invalid import secret")

    user = store.import_external_principal(
        request.external_id,
        request.email,
        fullname=request.fullname or "",
        provider=request.provider,
        profile_photo=request.profile_photo or "",
    )
    token = start_session(response, user, issuer, settings)
    return {"success": True, "user": user, "token": token}
