"""
Identity store: credentials, password hashing and session tokens.

Passwords are hashed with bcrypt through passlib; sessions are signed JWTs
whose subject is the identity id.
"""

import logging
import uuid
from dataclasses import dataclass

import jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrportal.auth import jwt_handler
from hrportal.auth.errors import IdentityExistsError
from hrportal.models.identity import Identity

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class SessionUser:
    """The identity behind a valid, unexpired session token."""

    id: str
    email: str


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_identity_by_email(db: Session, email: str) -> Identity | None:
    return db.query(Identity).filter(Identity.email == normalize_email(email)).first()


def sign_up(db: Session, email: str, password: str) -> Identity:
    """
    Create and commit a new identity.

    Raises:
        IdentityExistsError: if the email is already registered
    """
    email = normalize_email(email)
    if get_identity_by_email(db, email) is not None:
        raise IdentityExistsError(email)

    identity = Identity(
        id=str(uuid.uuid4()),
        email=email,
        hashed_password=pwd_context.hash(password),
    )
    db.add(identity)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise IdentityExistsError(email) from exc
    db.refresh(identity)
    return identity


def sign_in(db: Session, email: str, password: str) -> Identity | None:
    identity = get_identity_by_email(db, email)
    if identity is None:
        return None
    if not pwd_context.verify(password, identity.hashed_password):
        return None
    return identity


def delete_identity(db: Session, identity_id: str, commit: bool = True) -> bool:
    deleted = db.query(Identity).filter(Identity.id == identity_id).delete(synchronize_session=False)
    if commit:
        db.commit()
    return bool(deleted)


def change_email(db: Session, identity_id: str, email: str) -> str:
    """
    Point an identity at a new sign-in email. The caller commits.

    Raises:
        IdentityExistsError: if another identity already uses the email
    """
    email = normalize_email(email)
    existing = get_identity_by_email(db, email)
    if existing is not None and existing.id != identity_id:
        raise IdentityExistsError(email)
    db.query(Identity).filter(Identity.id == identity_id).update(
        {Identity.email: email},
        synchronize_session=False,
    )
    return email


def issue_session(identity: Identity) -> str:
    return jwt_handler.create_access_token(subject=identity.id, email=identity.email)


def read_session(db: Session, token: str | None) -> SessionUser | None:
    """Return the session's identity, or None when there is no valid session."""
    if not token:
        return None
    try:
        payload = jwt_handler.decode_token(token, jwt_handler.SESSION_TOKEN_TYPE)
    except jwt.InvalidTokenError:
        return None

    identity_id = payload.get("sub")
    if not identity_id:
        return None

    identity = db.query(Identity).filter(Identity.id == identity_id).first()
    if identity is None:
        logger.info("Session for deleted identity %s rejected", identity_id)
        return None
    return SessionUser(id=identity.id, email=identity.email)
