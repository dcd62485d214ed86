"""
Role resolution for an authenticated session.

Turns a session into the ``(id, email, role)`` triple the rest of the
application trusts, creating the profile row when it is missing. A profile
may be missing when signup committed the identity but not the profile, or
when a compensating rollback in user creation failed; the first successful
sign-in repairs it here.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hrportal.auth.errors import ProvisioningError, UpstreamError
from hrportal.auth.identity_store import SessionUser
from hrportal.auth.roles import Role, role_from_email
from hrportal.models.profile import Profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedUser:
    id: str
    email: str
    role: Role
    provisioned: bool = False


def _lookup_profile(db: Session, user_id: str) -> Profile | None:
    return db.query(Profile).filter(Profile.id == user_id).first()


def _effective_role(profile: Profile) -> Role:
    role = Role.parse(profile.role)
    if role is None:
        logger.warning("Profile %s has unknown role %r; treating as applicant", profile.id, profile.role)
        return Role.APPLICANT
    return role


def _to_resolved(session_user: SessionUser, profile: Profile, provisioned: bool = False) -> ResolvedUser:
    return ResolvedUser(
        id=session_user.id,
        email=profile.email or session_user.email,
        role=_effective_role(profile),
        provisioned=provisioned,
    )


def _provision_profile(db: Session, session_user: SessionUser) -> ResolvedUser:
    candidate = role_from_email(session_user.email)
    db.add(Profile(id=session_user.id, email=session_user.email, role=candidate.value))
    try:
        db.commit()
    except IntegrityError:
        # Someone else created the row between our lookup and insert.
        db.rollback()
        logger.info("Profile for %s created concurrently; reading it back", session_user.id)
        try:
            existing = _lookup_profile(db, session_user.id)
        except SQLAlchemyError as exc:
            raise ProvisioningError("Could not read profile after concurrent insert") from exc
        if existing is None:
            raise ProvisioningError("Profile insert conflicted but no row exists")
        return _to_resolved(session_user, existing)
    except SQLAlchemyError as insert_error:
        db.rollback()
        logger.warning("Profile insert for %s failed: %s; retrying lookup", session_user.id, insert_error)
        try:
            existing = _lookup_profile(db, session_user.id)
        except SQLAlchemyError as exc:
            raise ProvisioningError("Profile could not be created or read") from exc
        if existing is None:
            raise ProvisioningError("Profile could not be created") from insert_error
        return _to_resolved(session_user, existing)

    try:
        persisted = _lookup_profile(db, session_user.id)
    except SQLAlchemyError as exc:
        raise ProvisioningError("Could not read provisioned profile") from exc
    if persisted is None:
        raise ProvisioningError("Profile vanished after insert")
    logger.info("Provisioned profile %s with role %s", session_user.id, persisted.role)
    return _to_resolved(session_user, persisted, provisioned=True)


def resolve(db: Session, session_user: SessionUser) -> ResolvedUser:
    """
    Resolve the effective role for a session, provisioning a profile if needed.

    Args:
        db: Database session
        session_user: Identity behind a valid session

    Returns:
        The resolved user. ``role`` is always a known Role; an unknown stored
        value resolves to applicant.

    Raises:
        UpstreamError: the profile lookup itself failed
        ProvisioningError: no profile exists and none could be created
    """
    try:
        profile = _lookup_profile(db, session_user.id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise UpstreamError("Profile lookup failed") from exc

    if profile is not None:
        return _to_resolved(session_user, profile)

    return _provision_profile(db, session_user)
