"""
Authentication Routes

POST /auth/register - Register new user (sends verification code)
POST /auth/verify-email - Verify e-mail with 6-digit code, logs in
POST /auth/resend-code - Send a new verification code
POST /auth/login - Login, get JWT token + auth cookie
POST /auth/logout - Clear auth cookie
GET /auth/me - Get current user info
POST /auth/forgot-password - E-mail a reset link
POST /auth/reset-password - Set a new password with a reset token
GET /auth/google - Redirect to Google consent screen
GET /auth/google/callback - Google OAuth callback
GET /csrf-token - Issue CSRF token + cookie
"""

import hmac
import logging
from datetime import timedelta
from typing import Optional
from urllib.parse import urlencode

import requests
from fastapi import APIRouter, HTTPException, Depends, Request, Response
from fastapi.responses import RedirectResponse

from monera.core.auth import (
    hash_password, verify_password, create_user_token, get_current_user,
    set_auth_cookie, clear_auth_cookie
)
from monera.core.config import get_settings
from monera.core.security import (
    MAX_VERIFICATION_ATTEMPTS, RESET_TOKEN_EXPIRY_HOURS, enforce_csrf, generate_csrf_token,
    generate_otp, generate_reset_token, get_code_expiration_time, get_resend_cooldown_seconds,
    can_resend_code, is_code_expired, is_valid_otp_format, login_rate_limiter,
    registration_rate_limiter
)
from monera.db.repository import db
from monera.db.schema import utcnow
from monera.api.helpers import (
    create_role_profile, find_or_create_company, normalize_email, user_summary
)
from monera.services.email_service import email_templates, send_template
from monera.services.profile_service import pick_best_talent_profile
from monera.schemas.schemas import (
    RegisterRequest, RegisterResponse, VerifyEmailRequest, ResendCodeRequest, LoginRequest,
    TokenResponse, MeResponse, ForgotPasswordRequest, ResetPasswordRequest,
    CsrfTokenResponse, MessageResponse
)

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(prefix="/auth", tags=["Authentication"])
csrf_router = APIRouter(tags=["Authentication"])

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
OAUTH_TIMEOUT_SECONDS = 10

PUBLIC_ROLES = ("TALENT", "CLIENT")


def _send_verification_code(user: dict) -> dict:
    """Store a fresh code on the user and e-mail it."""
    code = generate_otp()
    user = db.user.update({"id": user["id"]}, {
        "verification_code": code,
        "verification_code_expires_at": get_code_expiration_time(),
        "verification_attempts": 0,
        "last_code_sent_at": utcnow(),
    })
    send_template(user["email"], email_templates.email_verification(user["full_name"], code, user["email"]))
    return user


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(payload: RegisterRequest, request: Request):
    """
    Register a new TALENT or CLIENT account.

    A 6-digit code is e-mailed; verify it before logging in.
    """
    enforce_csrf(request)
    registration_rate_limiter.enforce(request, "Too many registration attempts. Please try again later.")

    email = normalize_email(payload.email)
    if db.user.find_unique({"email": email}):
        raise HTTPException(status_code=409, detail="User with this email already exists")

    role = payload.role.value
    company_name = (payload.company_name or "").strip()
    company_id = None
    if role == "CLIENT" and company_name:
        company_id = find_or_create_company(company_name)["id"]

    user = db.user.create({
        "email": email,
        "password_hash": hash_password(payload.password),
        "role": role,
        "status": "ACTIVE",
        "full_name": company_name if role == "CLIENT" and company_name else email.split("@")[0],
        "email_verified": False,
    })
    create_role_profile(user, company_id)
    user = _send_verification_code(user)

    logger.info("Registered %s user %s", role, user["id"])
    return RegisterResponse(
        message="Registration successful. Please check your email for the verification code.",
        user=user_summary(user),
    )


@router.post("/verify-email", response_model=TokenResponse)
async def verify_email(payload: VerifyEmailRequest, response: Response):
    """Check the code; on success the user is verified and logged in."""
    user = db.user.find_unique({"email": normalize_email(payload.email)})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if user["email_verified"]:
        raise HTTPException(status_code=400, detail="Email is already verified")

    code = payload.code.strip()
    if not is_valid_otp_format(code):
        raise HTTPException(status_code=400, detail="Invalid code format. Code must be 6 digits.")

    if is_code_expired(user["verification_code_expires_at"]):
        raise HTTPException(status_code=400, detail="Verification code has expired. Please request a new code.")

    attempts = user["verification_attempts"] or 0
    if attempts >= MAX_VERIFICATION_ATTEMPTS:
        raise HTTPException(status_code=429, detail="Too many failed attempts. Please request a new code.")

    if not user["verification_code"] or not hmac.compare_digest(code, user["verification_code"]):
        attempts += 1
        db.user.update({"id": user["id"]}, {"verification_attempts": attempts})
        remaining = max(0, MAX_VERIFICATION_ATTEMPTS - attempts)
        raise HTTPException(
            status_code=400,
            detail=f"Invalid verification code. {remaining} attempt(s) remaining.",
        )

    user = db.user.update({"id": user["id"]}, {
        "email_verified": True,
        "verification_code": None,
        "verification_code_expires_at": None,
        "verification_attempts": 0,
    })

    token = create_user_token(user)
    set_auth_cookie(response, token)
    return TokenResponse(access_token=token, user=user_summary(user))


@router.post("/resend-code", response_model=MessageResponse)
async def resend_code(payload: ResendCodeRequest):
    """Send a new code, at most once per cooldown window."""
    user = db.user.find_unique({"email": normalize_email(payload.email)})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if user["email_verified"]:
        raise HTTPException(status_code=400, detail="Email is already verified")

    if not can_resend_code(user["last_code_sent_at"]):
        wait = get_resend_cooldown_seconds(user["last_code_sent_at"])
        raise HTTPException(
            status_code=429,
            detail=f"Please wait {wait} seconds before requesting a new code.",
            headers={"Retry-After": str(wait)},
        )

    _send_verification_code(user)
    return MessageResponse(message="A new verification code has been sent to your email.")


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, request: Request, response: Response):
    """
    Login and receive JWT access token.

    The token is also set as an http-only cookie. API clients may send
    it as: Authorization: Bearer <token>
    """
    enforce_csrf(request)
    login_rate_limiter.enforce(request, "Too many login attempts. Please try again later.")

    email = normalize_email(payload.email)
    user = db.user.find_unique({"email": email})

    if not user or not verify_password(payload.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    if user["status"] == "SUSPENDED":
        raise HTTPException(status_code=403, detail="Account is suspended")

    if not user["email_verified"]:
        raise HTTPException(
            status_code=403,
            detail={
                "message": "Please verify your email before logging in",
                "requires_verification": True,
                "email": email,
            },
        )

    token = create_user_token(user)
    set_auth_cookie(response, token)
    return TokenResponse(access_token=token, user=user_summary(user))


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    clear_auth_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=MeResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    row = db.user.find_unique({"id": user["user_id"]})

    talent_status = None
    company_id = None
    if row["role"] == "TALENT":
        best = pick_best_talent_profile(db.talent_profile.find_many({"user_id": row["id"]}))
        talent_status = best["status"] if best else None
    elif row["role"] == "CLIENT":
        recruiter = db.recruiter_profile.find_unique({"user_id": row["id"]})
        company_id = recruiter["company_id"] if recruiter else None

    return MeResponse(
        **user_summary(row).model_dump(),
        first_name=row["first_name"],
        last_name=row["last_name"],
        talent_status=talent_status,
        company_id=company_id,
    )


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(payload: ForgotPasswordRequest):
    """Same answer whether or not the account exists."""
    user = db.user.find_unique({"email": normalize_email(payload.email)})
    if user:
        token = generate_reset_token()
        db.user.update({"id": user["id"]}, {
            "reset_token": token,
            "reset_token_expires_at": utcnow() + timedelta(hours=RESET_TOKEN_EXPIRY_HOURS),
        })
        send_template(user["email"], email_templates.password_reset(user["full_name"], token))

    return MessageResponse(message="If an account with that email exists, a password reset link has been sent.")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(payload: ResetPasswordRequest):
    user = db.user.find_unique({"reset_token": payload.token})
    if not user or is_code_expired(user["reset_token_expires_at"]):
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    db.user.update({"id": user["id"]}, {
        "password_hash": hash_password(payload.password),
        "reset_token": None,
        "reset_token_expires_at": None,
    })
    return MessageResponse(message="Password has been reset successfully")


# ============================================================
# GOOGLE OAUTH
# ============================================================

def _login_error(error: str) -> RedirectResponse:
    return RedirectResponse(f"{settings.frontend_url}/login?{urlencode({'error': error})}", status_code=302)


def _exchange_google_code(code: str) -> dict:
    """Authorization code -> Google user info. Raises requests.RequestException/KeyError."""
    token_resp = requests.post(
        GOOGLE_TOKEN_URL,
        data={
            "code": code,
            "client_id": settings.google_client_id,
            "client_secret": settings.google_client_secret,
            "redirect_uri": settings.google_redirect_uri,
            "grant_type": "authorization_code",
        },
        timeout=OAUTH_TIMEOUT_SECONDS,
    )
    token_resp.raise_for_status()
    access_token = token_resp.json()["access_token"]

    info_resp = requests.get(
        GOOGLE_USERINFO_URL,
        headers={"Authorization": f"Bearer {access_token}"},
        timeout=OAUTH_TIMEOUT_SECONDS,
    )
    info_resp.raise_for_status()
    return info_resp.json()


@router.get("/google/callback")
def google_callback(code: Optional[str] = None, state: Optional[str] = None, error: Optional[str] = None):
    """Find or create the Google user, set the auth cookie, go to the dashboard."""
    if error or not code:
        return _login_error(error or "oauth_failed")

    try:
        profile = _exchange_google_code(code)
    except (requests.RequestException, KeyError, ValueError):
        logger.exception("Google OAuth code exchange failed")
        return _login_error("oauth_failed")

    email = profile.get("email")
    if not email:
        return _login_error("no_email")
    email = normalize_email(email)

    user = db.user.find_unique({"email": email})
    if not user:
        role = state if state in PUBLIC_ROLES else "TALENT"
        user = db.user.create({
            "email": email,
            "password_hash": None,
            "role": role,
            "status": "ACTIVE",
            "full_name": profile.get("name") or email.split("@")[0],
            "first_name": profile.get("given_name"),
            "last_name": profile.get("family_name"),
            "avatar_url": profile.get("picture"),
            "google_id": profile.get("id"),
            "email_verified": True,
        })
        create_role_profile(user)
        logger.info("Created %s user %s from Google sign-in", role, user["id"])
    else:
        user = db.user.update({"id": user["id"]}, {
            "google_id": user["google_id"] or profile.get("id"),
            "email_verified": True,
        })

    if user["status"] == "SUSPENDED":
        return _login_error("account_suspended")

    redirect = RedirectResponse(f"{settings.frontend_url}/dashboard", status_code=302)
    set_auth_cookie(redirect, create_user_token(user))
    return redirect


@router.get("/google")
def google_login(
    role: str = "TALENT",
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
):
    """Start Google sign-in. Providers that call back here with a code are handled too."""
    if code or error:
        return google_callback(code=code, state=state, error=error)

    if not settings.google_oauth_configured:
        raise HTTPException(status_code=503, detail="Google sign-in is not configured")

    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_uri,
        "response_type": "code",
        "scope": "openid email profile",
        "access_type": "online",
        "prompt": "select_account",
        "state": role if role in PUBLIC_ROLES else "TALENT",
    }
    return RedirectResponse(f"{GOOGLE_AUTH_URL}?{urlencode(params)}", status_code=302)


# ============================================================
# CSRF
# ============================================================

@csrf_router.get("/csrf-token", response_model=CsrfTokenResponse)
async def csrf_token(response: Response):
    token = generate_csrf_token()
    response.set_cookie(
        key=settings.csrf_cookie_name,
        value=token,
        max_age=60 * 60,
        httponly=True,
        secure=settings.cookie_secure or settings.is_production,
        samesite="strict",
        path="/",
    )
    return CsrfTokenResponse(token=token)
