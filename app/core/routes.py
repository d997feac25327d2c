# app/core/routes.py
"""
Route admission for the UI paths served by the hosting frontend.

Every path falls in exactly one class, checked in this order:
  - public     : no check
  - admin      : session + admin role (admin implies protected)
  - protected  : session required ("/" is a protected prefix, so this is
                 also the default for anything unmatched)

Static assets are not classified at all.
"""
import re
from urllib.parse import urlencode

from app.schemas.auth import RouteAdmission, RouteClass, SessionInfo

PUBLIC_ROUTES = ("/auth/signin", "/auth/callback")
ADMIN_ROUTES = ("/admin", "/setup", "/debug")
PROTECTED_ROUTES = ("/", "/specification", "/admin")

SIGN_IN_PATH = "/auth/signin"
DEFAULT_LANDING_PATH = "/"

_STATIC_ASSET = re.compile(r"^/(_next/static|_next/image|favicon\.ico)|\.svg$")


def _matches(path: str, routes: tuple[str, ...]) -> bool:
    return any(path == route or path.startswith(route) for route in routes)


def classify_path(path: str) -> RouteClass | None:
    """Return the route class of `path`, or None for static assets."""
    if _STATIC_ASSET.search(path):
        return None
    if _matches(path, PUBLIC_ROUTES):
        return "public"
    if _matches(path, ADMIN_ROUTES):
        return "admin"
    if _matches(path, PROTECTED_ROUTES):
        return "protected"
    # fail closed
    return "protected"


def sign_in_redirect(path: str) -> str:
    return f"{SIGN_IN_PATH}?{urlencode({'redirectedFrom': path})}"


def admit(path: str, session: SessionInfo) -> RouteAdmission:
    """
    Decide whether a UI path may render for this session.

    Non-admins asking for an admin path are sent to the landing page,
    not to an error page.
    """
    route_class = classify_path(path)

    if route_class is None or route_class == "public":
        return RouteAdmission(path=path, route_class=route_class, action="allow")

    if not session.is_authenticated:
        return RouteAdmission(
            path=path,
            route_class=route_class,
            action="redirect",
            location=sign_in_redirect(path),
        )

    if route_class == "admin" and not session.is_admin:
        return RouteAdmission(
            path=path,
            route_class=route_class,
            action="redirect",
            location=DEFAULT_LANDING_PATH,
        )

    return RouteAdmission(path=path, route_class=route_class, action="allow")
