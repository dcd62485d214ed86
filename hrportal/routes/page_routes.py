"""
Role-scoped pages.

Each page runs the page guard before returning its view model. A visitor
without a session goes to the login page with ``next`` set; a signed-in user
in the wrong area goes to their own home.
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from hrportal.auth.dependencies import current_session, get_session_token, require_page_role
from hrportal.auth.errors import AuthenticationError
from hrportal.auth.resolver import ResolvedUser, resolve
from hrportal.auth.roles import Role, safe_next
from hrportal.database import get_db

router = APIRouter(tags=['pages'])

logger = logging.getLogger(__name__)

NAVIGATION = {
    Role.SUPER_ADMIN: [
        ('Dashboard', '/admin/dashboard'),
        ('Job Posting', '/admin/jobposting'),
        ('Add Users', '/admin/addusers'),
    ],
    Role.HR: [
        ('Overview', '/hr/dashboard'),
        ('Job Posting', '/hr/jobs'),
        ('Review Application', '/hr/review'),
        ('Tag Application Status', '/hr/tag'),
    ],
    Role.APPLICANT: [
        ('Dashboard', '/applicant/dashboard'),
        ('Job Posting', '/applicant/job-postings'),
        ('Requirements', '/applicant/requirements'),
        ('Track Application', '/applicant/track'),
    ],
}

PAGE_ALIASES = {
    Role.SUPER_ADMIN: ['/admin'],
    Role.APPLICANT: ['/applicant'],
}


def page_view(title: str, path: str, user: ResolvedUser) -> dict:
    return {
        'page': title,
        'path': path,
        'user': {'id': user.id, 'email': user.email, 'role': user.role.value},
        'navigation': [{'label': label, 'href': href} for label, href in NAVIGATION[user.role]],
    }


def _register_page(path: str, title: str, role: Role) -> None:
    def page(user: ResolvedUser = Depends(require_page_role(role))):
        return page_view(title, path, user)

    router.add_api_route(path, page, methods=['GET'], name=f'page:{path}')


for _role, _pages in NAVIGATION.items():
    for _title, _path in _pages:
        _register_page(_path, _title, _role)
    for _alias in PAGE_ALIASES.get(_role, []):
        _register_page(_alias, _pages[0][0], _role)


@router.get('/login')
def login_page(
    next: str | None = Query(default=None),
    token: str | None = Depends(get_session_token),
    db: Session = Depends(get_db),
):
    try:
        session_user = current_session(db, token)
        if session_user is not None:
            user = resolve(db, session_user)
            return RedirectResponse(url=safe_next(next, user.role), status_code=302)
    except AuthenticationError as exc:
        logger.info('Showing login page after failed resolution: %s', exc)
    return {'page': 'login', 'next': next}
