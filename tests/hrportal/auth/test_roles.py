import pytest

from hrportal.auth.roles import (
    GuardDecision,
    Role,
    guard,
    login_redirect,
    role_from_email,
    route_for,
    safe_next,
)
from hrportal.core import config


@pytest.mark.parametrize(
    ('role', 'expected'),
    [
        (Role.SUPER_ADMIN, '/admin/dashboard'),
        (Role.HR, '/hr/dashboard'),
        (Role.APPLICANT, '/applicant/dashboard'),
        ('super_admin', '/admin/dashboard'),
        ('hr', '/hr/dashboard'),
        ('applicant', '/applicant/dashboard'),
        ('superuser', '/applicant/dashboard'),
        (None, '/applicant/dashboard'),
        ('', '/applicant/dashboard'),
    ],
)
def test_route_for_maps_roles_to_home_routes(role, expected: str) -> None:
    assert route_for(role) == expected
    assert route_for(role) == expected


def test_role_parse_rejects_unknown_values() -> None:
    assert Role.parse('hr') is Role.HR
    assert Role.parse(Role.SUPER_ADMIN) is Role.SUPER_ADMIN
    assert Role.parse('HR') is None
    assert Role.parse(None) is None


@pytest.mark.parametrize('current', list(Role))
def test_guard_denies_every_other_role_and_sends_to_own_home(current: Role) -> None:
    others = [role for role in Role if role is not current]

    for other in others:
        decision = guard({other}, current)
        assert decision == GuardDecision(allowed=False, redirect_to=route_for(current))


@pytest.mark.parametrize('current', list(Role))
def test_guard_allows_listed_role(current: Role) -> None:
    assert guard({current}, current.value) == GuardDecision(allowed=True)


def test_guard_sends_unknown_role_to_applicant_home() -> None:
    decision = guard({Role.SUPER_ADMIN}, 'root')

    assert decision.allowed is False
    assert decision.redirect_to == '/applicant/dashboard'


def test_hr_on_admin_only_page_goes_to_hr_dashboard() -> None:
    decision = guard({Role.SUPER_ADMIN}, Role.HR)

    assert decision.redirect_to == '/hr/dashboard'


def test_login_redirect_encodes_original_path() -> None:
    assert login_redirect('/hr/review?status=Hired') == '/login?next=%2Fhr%2Freview%3Fstatus%3DHired'


@pytest.mark.parametrize(
    ('next_path', 'role', 'expected'),
    [
        (None, Role.HR, '/hr/dashboard'),
        ('/hr/review', Role.HR, '/hr/review'),
        ('/admin/dashboard', Role.HR, '/hr/dashboard'),
        ('/applicant/track', Role.APPLICANT, '/applicant/track'),
        ('https://evil.example.com/hr', Role.HR, '/hr/dashboard'),
        ('//evil.example.com/hr', Role.HR, '/hr/dashboard'),
        ('/vacancies', Role.APPLICANT, '/applicant/dashboard'),
        ('/administrator', Role.SUPER_ADMIN, '/admin/dashboard'),
    ],
)
def test_safe_next_only_follows_paths_the_role_may_enter(next_path, role: Role, expected: str) -> None:
    assert safe_next(next_path, role) == expected


@pytest.mark.parametrize(
    ('email', 'expected'),
    [
        ('hr.jane@norsu.edu.ph', Role.HR),
        ('jane@norsu.edu.ph', Role.APPLICANT),
        ('admin@norsu.edu.ph', Role.SUPER_ADMIN),
        ('super.mario@norsu.edu.ph', Role.SUPER_ADMIN),
        (' HR.Office@NORSU.edu.ph ', Role.HR),
        (None, Role.APPLICANT),
    ],
)
def test_role_from_email_heuristic(email, expected: Role) -> None:
    assert role_from_email(email) is expected


def test_role_from_email_is_applicant_when_heuristic_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'HEURISTIC_ROLE_PROVISIONING', False)

    assert role_from_email('admin@norsu.edu.ph') is Role.APPLICANT
    assert role_from_email('hr.jane@norsu.edu.ph') is Role.APPLICANT
