"""
Admin role-based access control.

Admin roles:
- SUPER_ADMIN: everything
- QUALITY_ADMIN: talent review, jobs, skills
- SUPPORT_ADMIN: user support, applications, talent requests
- ANALYST: read-only analytics
"""

from typing import Dict, Optional

SUPER_ADMIN = "SUPER_ADMIN"
QUALITY_ADMIN = "QUALITY_ADMIN"
SUPPORT_ADMIN = "SUPPORT_ADMIN"
ANALYST = "ANALYST"

ADMIN_ROLES = (SUPER_ADMIN, QUALITY_ADMIN, SUPPORT_ADMIN, ANALYST)

# (method, path prefix, roles). First match wins; "*" matches any method and
# a {param} segment matches any single path segment.
ADMIN_ROUTE_PERMISSIONS = [
    ("*", "/admin/talent-review", (SUPER_ADMIN, QUALITY_ADMIN)),
    ("*", "/admin/users/{user_id}/suspend", (SUPER_ADMIN, SUPPORT_ADMIN)),
    ("*", "/admin/users/{user_id}/unsuspend", (SUPER_ADMIN, SUPPORT_ADMIN)),
    ("*", "/admin/users/{user_id}/role", (SUPER_ADMIN,)),
    ("POST", "/admin/users", (SUPER_ADMIN,)),
    ("DELETE", "/admin/users", (SUPER_ADMIN,)),
    ("*", "/admin/users", (SUPER_ADMIN, QUALITY_ADMIN)),
    ("*", "/admin/jobs", (SUPER_ADMIN, QUALITY_ADMIN)),
    ("*", "/admin/skills", (SUPER_ADMIN, QUALITY_ADMIN)),
    ("GET", "/admin/applications", ADMIN_ROLES),
    ("*", "/admin/applications", (SUPER_ADMIN, QUALITY_ADMIN, SUPPORT_ADMIN)),
    ("*", "/admin/stats/users", ADMIN_ROLES),
    ("*", "/admin/stats/talent-requests", (SUPER_ADMIN, QUALITY_ADMIN, SUPPORT_ADMIN)),
    ("*", "/admin/stats", (SUPER_ADMIN, QUALITY_ADMIN, ANALYST)),
    ("*", "/admin/companies", ADMIN_ROLES),
    ("*", "/admin/audit-logs", ADMIN_ROLES),
    ("*", "/admin/settings", (SUPER_ADMIN,)),
    ("*", "/admin/capabilities", ADMIN_ROLES),
]


def is_admin(role: Optional[str]) -> bool:
    return role in ADMIN_ROLES


def is_super_admin(role: Optional[str]) -> bool:
    return role == SUPER_ADMIN


def is_quality_admin(role: Optional[str]) -> bool:
    return role in (SUPER_ADMIN, QUALITY_ADMIN)


def is_support_admin(role: Optional[str]) -> bool:
    return role in (SUPER_ADMIN, SUPPORT_ADMIN)


def is_analyst(role: Optional[str]) -> bool:
    return role in (SUPER_ADMIN, ANALYST)


def _matches_prefix(prefix: str, route: str) -> bool:
    wanted = prefix.strip("/").split("/")
    actual = route.split("?", 1)[0].strip("/").split("/")
    if len(actual) < len(wanted):
        return False
    return all(w == a or (w.startswith("{") and w.endswith("}")) for w, a in zip(wanted, actual))


def has_route_access(role: Optional[str], route: str, method: str = "GET") -> bool:
    """Check an admin route against the permission table. Unknown routes are denied."""
    if is_super_admin(role):
        return True
    for allowed_method, prefix, roles in ADMIN_ROUTE_PERMISSIONS:
        if allowed_method in ("*", method.upper()) and _matches_prefix(prefix, route):
            return role in roles
    return False


def get_admin_capabilities(role: Optional[str]) -> Dict[str, bool]:
    return {
        "can_manage_admins": is_super_admin(role),
        "can_review_talent": is_quality_admin(role),
        "can_review_jobs": is_quality_admin(role),
        "can_manage_settings": is_super_admin(role),
        "can_view_analytics": is_analyst(role),
        "can_support_users": is_support_admin(role),
        "can_access_database": is_super_admin(role),
        "can_view_audit_log": is_super_admin(role),
    }
