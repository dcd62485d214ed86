from datetime import datetime, timedelta, timezone

import jwt
import pytest

from hrportal.auth import identity_store
from hrportal.auth.errors import IdentityExistsError
from hrportal.core import config
from hrportal.models.identity import Identity


def test_sign_up_normalizes_email_and_hashes_password(db) -> None:
    identity = identity_store.sign_up(db, ' Jane@NORSU.edu.ph ', 'secret123')

    assert identity.email == 'jane@norsu.edu.ph'
    assert identity.hashed_password != 'secret123'
    assert identity_store.sign_in(db, 'jane@norsu.edu.ph', 'secret123').id == identity.id


def test_sign_up_rejects_duplicate_email(db) -> None:
    identity_store.sign_up(db, 'jane@norsu.edu.ph', 'secret123')

    with pytest.raises(IdentityExistsError):
        identity_store.sign_up(db, 'JANE@norsu.edu.ph', 'another-secret')


def test_sign_in_rejects_wrong_password_and_unknown_email(db) -> None:
    identity_store.sign_up(db, 'jane@norsu.edu.ph', 'secret123')

    assert identity_store.sign_in(db, 'jane@norsu.edu.ph', 'wrong-password') is None
    assert identity_store.sign_in(db, 'nobody@norsu.edu.ph', 'secret123') is None


def test_read_session_returns_identity_for_valid_token(db) -> None:
    identity = identity_store.sign_up(db, 'jane@norsu.edu.ph', 'secret123')

    session_user = identity_store.read_session(db, identity_store.issue_session(identity))

    assert session_user == identity_store.SessionUser(id=identity.id, email='jane@norsu.edu.ph')


def test_read_session_rejects_expired_and_garbage_tokens(db) -> None:
    identity = identity_store.sign_up(db, 'jane@norsu.edu.ph', 'secret123')
    expired = jwt.encode(
        {
            'sub': identity.id,
            'email': identity.email,
            'typ': 'session',
            'exp': datetime.now(timezone.utc) - timedelta(minutes=1),
        },
        config.JWT_SECRET_KEY,
        algorithm=config.JWT_ALGORITHM,
    )

    assert identity_store.read_session(db, expired) is None
    assert identity_store.read_session(db, 'not-a-token') is None
    assert identity_store.read_session(db, None) is None


def test_read_session_rejects_signed_url_tokens(db) -> None:
    identity = identity_store.sign_up(db, 'jane@norsu.edu.ph', 'secret123')
    object_token = jwt.encode(
        {'sub': identity.id, 'typ': 'object', 'exp': datetime.now(timezone.utc) + timedelta(minutes=5)},
        config.JWT_SECRET_KEY,
        algorithm=config.JWT_ALGORITHM,
    )

    assert identity_store.read_session(db, object_token) is None


def test_read_session_rejects_deleted_identity(db) -> None:
    identity = identity_store.sign_up(db, 'jane@norsu.edu.ph', 'secret123')
    token = identity_store.issue_session(identity)

    assert identity_store.delete_identity(db, identity.id) is True

    assert identity_store.read_session(db, token) is None
    assert db.query(Identity).count() == 0


def test_delete_identity_without_commit_can_be_rolled_back(db) -> None:
    identity = identity_store.sign_up(db, 'jane@norsu.edu.ph', 'secret123')

    assert identity_store.delete_identity(db, identity.id, commit=False) is True
    db.rollback()

    assert db.query(Identity).filter(Identity.id == identity.id).count() == 1


def test_change_email_refuses_address_of_another_identity(db) -> None:
    jane = identity_store.sign_up(db, 'jane@norsu.edu.ph', 'secret123')
    identity_store.sign_up(db, 'kim@norsu.edu.ph', 'secret123')

    with pytest.raises(IdentityExistsError):
        identity_store.change_email(db, jane.id, 'KIM@norsu.edu.ph')

    assert identity_store.change_email(db, jane.id, ' Jane.Reyes@norsu.edu.ph ') == 'jane.reyes@norsu.edu.ph'
    db.commit()
    assert identity_store.sign_in(db, 'jane.reyes@norsu.edu.ph', 'secret123') is not None
