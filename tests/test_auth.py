from datetime import timedelta

import pytest
from jose import jwt

from clinic.auth_security import clean_token, issue_token, token_user_id
from clinic.auth_service import authenticate, create_user, get_user_by_id


def test_token_carries_user_id_and_username() -> None:
    token = issue_token('user-1', 'mario')

    claims = jwt.get_unverified_claims(token)
    assert claims['sub'] == 'user-1'
    assert claims['username'] == 'mario'
    assert token_user_id(token) == 'user-1'


@pytest.mark.parametrize('raw', ['  tok  ', '"tok"', "'tok'", ' "tok" '])
def test_clean_token_strips_pasted_quotes(raw: str) -> None:
    assert clean_token(raw) == 'tok'


def test_expired_or_foreign_tokens_have_no_user() -> None:
    expired = issue_token('user-1', 'mario', ttl=timedelta(minutes=-1))
    foreign = jwt.encode({'sub': 'user-1'}, 'another-secret', algorithm='HS256')

    assert token_user_id(expired) is None
    assert token_user_id(foreign) is None
    assert token_user_id('not-a-token') is None


def test_authenticate_records_last_login(factory) -> None:
    user_id = create_user('Laura', 'secret1', factory=factory)
    assert get_user_by_id(user_id, factory=factory).last_login_at is None

    user = authenticate('  LAURA ', 'secret1', factory=factory)

    assert user is not None and user.username == 'laura'
    assert get_user_by_id(user_id, factory=factory).last_login_at is not None


def test_wrong_password_does_not_touch_last_login(factory) -> None:
    user_id = create_user('laura', 'secret1', factory=factory)

    assert authenticate('laura', 'wrong-one', factory=factory) is None
    assert get_user_by_id(user_id, factory=factory).last_login_at is None
