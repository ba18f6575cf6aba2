"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- Auth cookie helpers
- FastAPI dependencies for protected routes (bearer header or auth cookie)
"""

from datetime import timedelta
from typing import Optional, Sequence

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from monera.core.config import get_settings
from monera.core.rbac import ADMIN_ROLES, has_route_access, is_admin
from monera.db.repository import db
from monera.db.schema import utcnow

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor; the cookie is the fallback so the header is optional
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password against hash. Accounts without a password (OAuth) never match."""
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_user_token(user: dict) -> str:
    return create_access_token({"sub": user["id"], "email": user["email"], "role": user["role"]})


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.jwt_expire_minutes * 60,
        httponly=True,
        secure=settings.cookie_secure or settings.is_production,
        samesite="lax",
        path="/",
    )


def clear_auth_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.auth_cookie_name, path="/")


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.auth_cookie_name)


def _resolve_user(token: str) -> dict:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(token)
    if not payload:
        raise credentials_exception

    user_id = payload.get("sub")
    if not user_id:
        raise credentials_exception

    # Verify user still exists
    user = db.user.find_unique({"id": user_id})
    if not user:
        raise credentials_exception

    if user["status"] == "SUSPENDED":
        raise HTTPException(status_code=403, detail="Account is suspended")

    return {"user_id": user["id"], "email": user["email"], "role": user["role"], "status": user["status"]}


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    token = _extract_token(request, credentials)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return _resolve_user(token)


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[dict]:
    """Same as get_current_user, but anonymous callers get None."""
    token = _extract_token(request, credentials)
    if not token:
        return None
    try:
        return _resolve_user(token)
    except HTTPException:
        return None


def require_roles(*roles: str):
    """Dependency factory - allow only the listed roles."""

    async def dependency(user: dict = Depends(get_current_user)) -> dict:
        if user["role"] not in roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user

    return dependency


def require_admin(allowed_roles: Sequence[str] = ADMIN_ROLES):
    """Dependency factory - admin endpoints, optionally narrowed to some admin roles."""
    return require_roles(*allowed_roles)


async def require_admin_route(request: Request, user: dict = Depends(get_current_user)) -> dict:
    """Dependency - admin endpoints gated by ADMIN_ROUTE_PERMISSIONS for the matched route."""
    if not is_admin(user["role"]):
        raise HTTPException(status_code=403, detail="Forbidden")

    route = request.scope.get("route")
    path = getattr(route, "path", None) or request.url.path
    path = path[path.find("/admin"):]
    if not has_route_access(user["role"], path, request.method):
        raise HTTPException(status_code=403, detail="Your admin role cannot access this resource")
    return user


async def get_current_talent(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require TALENT role and attach talent profile id (if any)."""
    if user["role"] != "TALENT":
        raise HTTPException(status_code=403, detail="Only talents can access this resource")

    profile = db.talent_profile.find_unique({"user_id": user["user_id"]})
    user["talent_profile_id"] = profile["id"] if profile else None
    return user


async def get_current_client(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require CLIENT role and attach recruiter company id (if any)."""
    if user["role"] != "CLIENT":
        raise HTTPException(status_code=403, detail="Only clients can access this resource")

    profile = db.recruiter_profile.find_unique({"user_id": user["user_id"]})
    user["company_id"] = profile["company_id"] if profile else None
    return user


get_current_admin = require_admin()
