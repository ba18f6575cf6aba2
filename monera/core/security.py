"""
Security helpers - verification codes, CSRF tokens and rate limiting.

Provides:
- 6-digit e-mail verification codes with expiry and resend cooldown
- Double-submit CSRF token (cookie + x-csrf-token header)
- In-memory fixed-window rate limiter keyed by client IP
"""

import hmac
import math
import re
import secrets
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from fastapi import HTTPException, Request

from monera.core.config import get_settings
from monera.db.schema import utcnow

settings = get_settings()

CODE_EXPIRY_MINUTES = 10
RESEND_COOLDOWN_SECONDS = 60
MAX_VERIFICATION_ATTEMPTS = 3
RESET_TOKEN_EXPIRY_HOURS = 1

CSRF_HEADER_NAME = "x-csrf-token"

_OTP_PATTERN = re.compile(r"^\d{6}$")


# ============================================================
# VERIFICATION CODES
# ============================================================

def generate_otp() -> str:
    """Random 6-digit code, zero-padded."""
    return f"{secrets.randbelow(1_000_000):06d}"


def is_valid_otp_format(code: Optional[str]) -> bool:
    return bool(code) and bool(_OTP_PATTERN.match(code))


def is_code_expired(expires_at: Optional[datetime]) -> bool:
    if not expires_at:
        return True
    return expires_at < utcnow()


def get_code_expiration_time() -> datetime:
    return utcnow() + timedelta(minutes=CODE_EXPIRY_MINUTES)


def _seconds_since(moment: datetime) -> float:
    return (utcnow() - moment).total_seconds()


def can_resend_code(last_sent_at: Optional[datetime]) -> bool:
    if not last_sent_at:
        return True
    return _seconds_since(last_sent_at) >= RESEND_COOLDOWN_SECONDS


def get_resend_cooldown_seconds(last_sent_at: Optional[datetime]) -> int:
    if not last_sent_at:
        return 0
    return max(0, math.ceil(RESEND_COOLDOWN_SECONDS - _seconds_since(last_sent_at)))


def generate_reset_token() -> str:
    """64 hex chars, used in the password-reset link."""
    return secrets.token_hex(32)


# ============================================================
# CSRF
# ============================================================

def generate_csrf_token() -> str:
    return secrets.token_hex(32)


def validate_csrf_request(request: Request) -> bool:
    """Header token must equal the csrf cookie."""
    header_token = request.headers.get(CSRF_HEADER_NAME)
    cookie_token = request.cookies.get(settings.csrf_cookie_name)
    if not header_token or not cookie_token:
        return False
    return hmac.compare_digest(header_token, cookie_token)


def enforce_csrf(request: Request) -> None:
    """Reject state-changing auth requests without a valid CSRF pair (production only)."""
    if settings.is_production and not validate_csrf_request(request):
        raise HTTPException(status_code=403, detail="Invalid CSRF token")


# ============================================================
# RATE LIMITING
# ============================================================

def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    if request.client:
        return request.client.host
    return "unknown"


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_at: float

    @property
    def retry_after(self) -> int:
        return max(0, math.ceil(self.reset_at - time.time()))


class RateLimiter:
    """
    Fixed-window counter per key, kept in process memory. The window
    opens on the first request for a key and the count resets when it ends.

    A rejected request does not consume quota.
    """

    def __init__(
        self,
        window_seconds: int,
        max_requests: int,
        key_func: Optional[Callable[[Request], str]] = None,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.key_func = key_func or client_ip
        self._windows: Dict[str, list] = {}
        self._lock = threading.Lock()

    def _purge(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._windows.items() if reset_at < now]
        for key in expired:
            del self._windows[key]

    def check(self, request: Request) -> RateLimitResult:
        key = self.key_func(request)
        now = time.time()
        with self._lock:
            self._purge(now)
            window = self._windows.get(key)
            if window is None:
                reset_at = now + self.window_seconds
                self._windows[key] = [1, reset_at]
                return RateLimitResult(True, self.max_requests - 1, reset_at)

            count, reset_at = window
            if count >= self.max_requests:
                return RateLimitResult(False, 0, reset_at)

            window[0] = count + 1
            return RateLimitResult(True, self.max_requests - window[0], reset_at)

    def enforce(self, request: Request, message: str) -> RateLimitResult:
        result = self.check(request)
        if not result.allowed:
            raise HTTPException(
                status_code=429,
                detail=message,
                headers={"Retry-After": str(result.retry_after)},
            )
        return result

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


login_rate_limiter = RateLimiter(15 * 60, 5, key_func=lambda request: f"login:{client_ip(request)}")
registration_rate_limiter = RateLimiter(60 * 60, 3)
api_rate_limiter = RateLimiter(60, 100)

ALL_RATE_LIMITERS = (login_rate_limiter, registration_rate_limiter, api_rate_limiter)
