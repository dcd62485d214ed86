"""Roles, home routes and the access decision shared by every redirect site."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable
from urllib.parse import quote, urlparse

from hrportal.core import config

logger = logging.getLogger(__name__)


class Role(str, Enum):
    APPLICANT = "applicant"
    HR = "hr"
    SUPER_ADMIN = "super_admin"

    @classmethod
    def parse(cls, value) -> "Role | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


HOME_ROUTES = {
    Role.SUPER_ADMIN: "/admin/dashboard",
    Role.HR: "/hr/dashboard",
    Role.APPLICANT: "/applicant/dashboard",
}

AREA_PREFIXES = {
    Role.SUPER_ADMIN: "/admin",
    Role.HR: "/hr",
    Role.APPLICANT: "/applicant",
}

LOGIN_PATH = "/login"


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    redirect_to: str | None = None


def route_for(role) -> str:
    parsed = Role.parse(role)
    if parsed is None:
        return HOME_ROUTES[Role.APPLICANT]
    return HOME_ROUTES[parsed]


def guard(required_roles: Iterable, current_role) -> GuardDecision:
    allowed = {Role.parse(role) for role in required_roles} - {None}
    current = Role.parse(current_role)
    if current is not None and current in allowed:
        return GuardDecision(allowed=True)
    return GuardDecision(allowed=False, redirect_to=route_for(current_role))


def login_redirect(path: str) -> str:
    return f"{LOGIN_PATH}?next={quote(path, safe='')}"


def area_for_path(path: str) -> Role | None:
    for role, prefix in AREA_PREFIXES.items():
        if path == prefix or path.startswith(prefix + "/"):
            return role
    return None


def safe_next(next_path: str | None, role) -> str:
    """Return where to send a freshly signed-in user.

    A ``next`` value is only followed when it is a local path inside an area
    the role may enter; anything else falls back to the role's home.
    """
    home = route_for(role)
    if not next_path:
        return home

    parsed = urlparse(next_path)
    if parsed.scheme or parsed.netloc or not next_path.startswith("/") or next_path.startswith("//"):
        return home

    area = area_for_path(parsed.path)
    if area is None:
        return home
    if not guard({area}, role).allowed:
        return home
    return next_path


def role_from_email(email: str | None) -> Role:
    if not config.HEURISTIC_ROLE_PROVISIONING:
        return Role.APPLICANT

    normalized = (email or "").strip().lower()
    if "admin" in normalized or "super" in normalized:
        role = Role.SUPER_ADMIN
    elif "hr" in normalized:
        role = Role.HR
    else:
        return Role.APPLICANT

    logger.warning("Heuristic provisioning assigned role %s to %s", role.value, normalized)
    return role
