"""
Super-admin user management.

Every handler re-resolves the caller's role from the session; a role sent by
the client is never trusted. Profiles with role super_admin cannot be updated
or deleted through this API at all.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hrportal import storage
from hrportal.auth import identity_store
from hrportal.auth.dependencies import require_roles
from hrportal.auth.errors import IdentityExistsError
from hrportal.auth.resolver import ResolvedUser
from hrportal.auth.roles import Role
from hrportal.database import get_db
from hrportal.models.application import Application
from hrportal.models.job_posting import JobPosting
from hrportal.models.profile import Profile
from hrportal.routes.hr_routes import PENDING_STATUS
from hrportal.schemas import MIN_PASSWORD_LENGTH, ProfileResponse, is_valid_email

router = APIRouter(tags=['admin'])

logger = logging.getLogger(__name__)

require_super_admin = require_roles(Role.SUPER_ADMIN)


class CreateUserRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    phone: str | None = None
    role: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class UpdateUserRequest(BaseModel):
    email: str | None = None
    phone: str | None = None
    role: str | None = None
    first_name: str | None = None
    last_name: str | None = None


def get_dashboard_stats(db: Session) -> dict:
    return {
        'totalUsers': db.query(Profile).count(),
        'totalApplications': db.query(Application).count(),
        'totalHRStaff': db.query(Profile).filter(Profile.role == Role.HR.value).count(),
        'pendingReviews': db.query(Application).filter(Application.status == PENDING_STATUS).count(),
    }


def get_target_profile(db: Session, user_id: str) -> Profile:
    target = db.query(Profile).filter(Profile.id == user_id).first()
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='User not found')
    if target.role == Role.SUPER_ADMIN.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Cannot modify super admin users')
    return target


def create_profile(db: Session, identity_id: str, payload: CreateUserRequest, role: Role) -> Profile:
    profile = Profile(
        id=identity_id,
        email=payload.email.strip().lower(),
        phone=payload.phone or None,
        first_name=payload.first_name or None,
        last_name=payload.last_name or None,
        role=role.value,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)
    return profile


def rollback_identity(db: Session, identity_id: str) -> None:
    try:
        identity_store.delete_identity(db, identity_id)
        logger.info('Rolled back identity %s after failed profile creation', identity_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Failed to roll back identity %s', identity_id)


@router.get('')
def list_users_or_stats(
    stats: bool = Query(default=False),
    _: ResolvedUser = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    if stats:
        return get_dashboard_stats(db)

    users = db.query(Profile).order_by(Profile.created_at.desc()).all()
    return {'users': [ProfileResponse.model_validate(user) for user in users]}


@router.post('', status_code=status.HTTP_201_CREATED)
def create_user(
    payload: CreateUserRequest,
    admin: ResolvedUser = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    if not payload.email or not payload.password or not payload.role:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Missing required fields')
    if not is_valid_email(payload.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email is invalid')
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Password must be at least {MIN_PASSWORD_LENGTH} characters',
        )
    role = Role.parse(payload.role)
    if role is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid role')

    try:
        identity = identity_store.sign_up(db, payload.email, payload.password)
    except IdentityExistsError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email already registered') from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Identity creation failed for %s', payload.email)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail='Failed to create user') from exc

    try:
        profile = create_profile(db, identity.id, payload, role)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Profile creation failed for %s; rolling back identity', identity.id)
        rollback_identity(db, identity.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f'Failed to create user profile: {exc.__class__.__name__}',
        ) from exc

    logger.info('User %s created with role %s by %s', profile.id, profile.role, admin.id)
    return {
        'user': {
            'id': profile.id,
            'email': profile.email,
            'role': profile.role,
            'phone': profile.phone,
        }
    }


@router.put('/{user_id}')
def update_user(
    user_id: str,
    payload: UpdateUserRequest,
    admin: ResolvedUser = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    target = get_target_profile(db, user_id)
    updates = payload.model_dump(exclude_unset=True)

    if 'role' in updates:
        role = Role.parse(updates['role'])
        if role is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid role')
        updates['role'] = role.value
    if 'email' in updates:
        if not is_valid_email(updates['email']):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email is invalid')
        try:
            updates['email'] = identity_store.change_email(db, user_id, updates['email'])
        except IdentityExistsError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Email already registered') from exc

    for field, value in updates.items():
        setattr(target, field, value)
    db.commit()

    logger.info('User %s updated by %s: %s', user_id, admin.id, sorted(updates))
    return {'success': True}


@router.delete('/{user_id}')
def delete_user(
    user_id: str,
    admin: ResolvedUser = Depends(require_super_admin),
    db: Session = Depends(get_db),
):
    target = get_target_profile(db, user_id)
    document_paths = [
        path for (path,) in db.query(Application.pdf_path).filter(Application.applicant_id == user_id)
    ]

    # Applications, profile and identity are removed in one commit.
    try:
        removed_applications = (
            db.query(Application)
            .filter(Application.applicant_id == user_id)
            .delete(synchronize_session=False)
        )
        db.query(JobPosting).filter(JobPosting.created_by == user_id).update(
            {JobPosting.created_by: None},
            synchronize_session=False,
        )
        db.delete(target)
        db.flush()
        identity_store.delete_identity(db, user_id, commit=False)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Deleting user %s failed; nothing was removed', user_id)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Failed to delete user. Please try again.',
        ) from exc

    storage.delete_objects(document_paths)
    logger.info('User %s deleted by %s (%d applications removed)', user_id, admin.id, removed_applications)
    return {'success': True}
