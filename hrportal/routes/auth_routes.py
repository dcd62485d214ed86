import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hrportal.auth import identity_store
from hrportal.auth.dependencies import get_resolved_user
from hrportal.auth.errors import IdentityExistsError, ProvisioningError, UpstreamError
from hrportal.auth.identity_store import SessionUser
from hrportal.auth.resolver import ResolvedUser, resolve
from hrportal.auth.roles import Role, route_for, safe_next
from hrportal.core import config
from hrportal.database import get_db
from hrportal.models.profile import Profile
from hrportal.schemas import MIN_PASSWORD_LENGTH, ProfileResponse, is_valid_email

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


class SignupRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    phone: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class ProfileUpdateRequest(BaseModel):
    email: str | None = None
    phone: str | None = None
    first_name: str | None = None
    last_name: str | None = None


def validate_credentials(email: str | None, password: str | None) -> None:
    if not email or not email.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email is required')
    if not is_valid_email(email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email is invalid')
    if not password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Password is required')
    if len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Password must be at least {MIN_PASSWORD_LENGTH} characters',
        )


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=token,
        max_age=config.JWT_EXPIRES_MINUTES * 60,
        httponly=True,
        secure=config.SESSION_COOKIE_SECURE,
        samesite='lax',
    )


def user_summary(user: ResolvedUser) -> dict:
    return {'id': user.id, 'email': user.email, 'role': user.role.value}


@router.post('/signup', status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, response: Response, db: Session = Depends(get_db)):
    validate_credentials(payload.email, payload.password)

    try:
        identity = identity_store.sign_up(db, payload.email, payload.password)
    except IdentityExistsError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email already registered') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Identity creation failed for %s', payload.email)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Could not create account. Please try again.',
        ) from exc

    db.add(
        Profile(
            id=identity.id,
            email=identity.email,
            phone=payload.phone or None,
            first_name=payload.first_name or None,
            last_name=payload.last_name or None,
            role=Role.APPLICANT.value,
        )
    )
    try:
        db.commit()
    except SQLAlchemyError:
        # The identity stays; the profile is provisioned on first sign-in.
        db.rollback()
        logger.exception('Profile creation failed for %s', identity.id)

    token = identity_store.issue_session(identity)
    set_session_cookie(response, token)
    return {
        'user': {'id': identity.id, 'email': identity.email, 'role': Role.APPLICANT.value},
        'access_token': token,
        'token_type': 'bearer',
        'redirect_to': route_for(Role.APPLICANT),
    }


@router.post('/login')
def login(
    payload: LoginRequest,
    response: Response,
    next: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    if not payload.email or not payload.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email and password are required')

    try:
        identity = identity_store.sign_in(db, payload.email, payload.password)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Sign-in lookup failed')
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Authentication service unavailable. Please try again.',
        ) from exc
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Invalid email or password')

    try:
        user = resolve(db, SessionUser(id=identity.id, email=identity.email))
    except UpstreamError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Authentication service unavailable. Please try again.',
        ) from exc
    except ProvisioningError as exc:
        logger.warning('Sign-in for %s failed during provisioning: %s', identity.id, exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Authentication failed') from exc

    token = identity_store.issue_session(identity)
    set_session_cookie(response, token)
    logger.info('Sign-in for %s resolved to %s', identity.id, user.role.value)
    return {
        'user': user_summary(user),
        'access_token': token,
        'token_type': 'bearer',
        'redirect_to': safe_next(next, user.role),
    }


@router.post('/logout')
def logout(response: Response):
    response.delete_cookie(config.SESSION_COOKIE_NAME)
    return {'success': True}


@router.get('/me')
def me(user: ResolvedUser = Depends(get_resolved_user), db: Session = Depends(get_db)):
    profile = db.query(Profile).filter(Profile.id == user.id).first()
    return {
        'user': user_summary(user),
        'profile': ProfileResponse.model_validate(profile) if profile else None,
    }


@router.patch('/me', response_model=ProfileResponse)
def update_me(
    payload: ProfileUpdateRequest,
    user: ResolvedUser = Depends(get_resolved_user),
    db: Session = Depends(get_db),
):
    updates = payload.model_dump(exclude_unset=True)
    if 'email' in updates and not is_valid_email(updates['email']):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email is invalid')

    profile = db.query(Profile).filter(Profile.id == user.id).first()
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Profile not found')

    if 'email' in updates:
        try:
            updates['email'] = identity_store.change_email(db, user.id, updates['email'])
        except IdentityExistsError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email already registered') from exc

    for field, value in updates.items():
        setattr(profile, field, value)
    db.commit()
    db.refresh(profile)
    return profile
