import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hrportal.auth import identity_store
from hrportal.auth.errors import AuthenticationError, PageRedirect, ProvisioningError, UpstreamError
from hrportal.auth.identity_store import SessionUser
from hrportal.auth.resolver import ResolvedUser, resolve
from hrportal.auth.roles import guard, login_redirect
from hrportal.core import config
from hrportal.database import get_db

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_session_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str | None:
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(config.SESSION_COOKIE_NAME)


def current_session(db: Session, token: str | None) -> SessionUser | None:
    try:
        return identity_store.read_session(db, token)
    except SQLAlchemyError as exc:
        db.rollback()
        raise UpstreamError("Session lookup failed") from exc


def get_resolved_user(
    token: str | None = Depends(get_session_token),
    db: Session = Depends(get_db),
) -> ResolvedUser:
    try:
        session_user = current_session(db, token)
        if session_user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
        return resolve(db, session_user)
    except UpstreamError as exc:
        logger.warning("Role resolution unavailable: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable. Please try again.",
        ) from exc
    except ProvisioningError as exc:
        logger.warning("Role resolution failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication failed") from exc


def require_roles(*roles):
    """API guard: 401 without a session, 403 when the resolved role is not allowed."""

    def dependency(user: ResolvedUser = Depends(get_resolved_user)) -> ResolvedUser:
        if not guard(roles, user.role).allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return user

    return dependency


def require_page_role(*roles):
    """Page guard: every failure becomes a redirect, never an error page."""

    def dependency(
        request: Request,
        token: str | None = Depends(get_session_token),
        db: Session = Depends(get_db),
    ) -> ResolvedUser:
        destination = request.url.path
        if request.url.query:
            destination = f"{destination}?{request.url.query}"

        try:
            session_user = current_session(db, token)
            if session_user is None:
                raise PageRedirect(login_redirect(destination))
            user = resolve(db, session_user)
        except AuthenticationError as exc:
            logger.warning("Page guard for %s could not resolve role: %s", destination, exc)
            raise PageRedirect(login_redirect(destination)) from exc

        decision = guard(roles, user.role)
        if not decision.allowed:
            raise PageRedirect(decision.redirect_to)
        return user

    return dependency
