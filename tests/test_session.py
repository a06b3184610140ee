from types import SimpleNamespace

import pytest
import requests

from clinic import auth_provider
from clinic.auth_provider import ApiAuthProvider, AuthenticationError, LocalAuthProvider, build_provider
from clinic.auth_service import create_user
from clinic.notifications import MemorySink, NotificationRelay, Severity
from clinic.session import LOGIN_FAILED_DESCRIPTION, SessionGate, SignInForm
from clinic.validation import PASSWORD_TOO_SHORT, USERNAME_REQUIRED, USERNAME_TOO_SHORT


class FakeProvider:
    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.calls = []

    def sign_in(self, provider, params):
        self.calls.append((provider, dict(params)))
        if not self.accept:
            raise AuthenticationError('rejected')


def _form(accept: bool = True):
    gate = SessionGate()
    provider = FakeProvider(accept)
    sink = MemorySink()
    return gate, provider, sink, SignInForm(gate, provider, NotificationRelay(sink))


def test_gate_renders_exactly_one_subtree() -> None:
    gate = SessionGate()
    rendered = []

    gate.render(lambda: rendered.append('dashboard'), lambda: rendered.append('sign_in'))
    gate.authenticate('mario')
    gate.render(lambda: rendered.append('dashboard'), lambda: rendered.append('sign_in'))
    gate.sign_out()
    gate.render(lambda: rendered.append('dashboard'), lambda: rendered.append('sign_in'))

    assert rendered == ['sign_in', 'dashboard', 'sign_in']
    assert gate.username is None


def test_short_username_blocks_network_call() -> None:
    gate, provider, sink, form = _form()
    form.set_username('ab')
    form.set_password('any-password')

    assert form.submit() is False

    assert form.errors.username == USERNAME_TOO_SHORT
    assert form.errors.password == ''
    assert provider.calls == []
    assert sink.items == []
    assert not gate.authenticated


def test_editing_a_field_clears_only_its_error() -> None:
    _, _, _, form = _form()
    form.set_password('123')
    form.submit()
    assert form.errors.username == USERNAME_REQUIRED
    assert form.errors.password == PASSWORD_TOO_SHORT

    form.set_username('m')

    assert form.errors.username == ''
    assert form.errors.password == PASSWORD_TOO_SHORT


def test_successful_sign_in_authenticates_session() -> None:
    gate, provider, sink, form = _form()
    form.set_username('  Mario ')
    form.set_password('secret1')

    assert form.submit() is True

    assert gate.authenticated
    assert gate.username == 'mario'
    assert provider.calls == [('username', {'username': '  Mario ', 'password': 'secret1'})]
    assert [a.severity for a in sink.items] == [Severity.NORMAL]
    assert form.is_loading is False


def test_rejected_credentials_show_one_generic_error() -> None:
    gate, provider, sink, form = _form(accept=False)
    form.set_username('mario')
    form.set_password('wrong-pass')

    assert form.submit() is False

    assert not gate.authenticated
    assert [(a.severity, a.description) for a in sink.items] == [(Severity.DESTRUCTIVE, LOGIN_FAILED_DESCRIPTION)]
    assert form.is_loading is False

    # il form resta utilizzabile
    provider.accept = True
    assert form.submit() is True
    assert gate.authenticated


def test_help_links_only_notify() -> None:
    gate, provider, sink, form = _form()

    form.forgot_password()
    form.contact_support()

    assert len(sink.items) == 2
    assert provider.calls == []
    assert not gate.authenticated


def test_local_provider_checks_users_table(factory) -> None:
    create_user('Mario', 'secret1', factory=factory)
    provider = LocalAuthProvider(factory=factory)

    provider.sign_in('username', {'username': 'mario', 'password': 'secret1'})
    assert provider.user_id is not None

    with pytest.raises(AuthenticationError):
        provider.sign_in('username', {'username': 'mario', 'password': 'wrong-pass'})
    with pytest.raises(AuthenticationError):
        provider.sign_in('username', {'username': 'nobody', 'password': 'secret1'})
    with pytest.raises(AuthenticationError):
        provider.sign_in('github', {'username': 'mario', 'password': 'secret1'})


def test_create_user_rejects_duplicates_and_bad_shape(factory) -> None:
    create_user('mario', 'secret1', factory=factory)

    with pytest.raises(ValueError):
        create_user(' MARIO ', 'secret2', factory=factory)
    with pytest.raises(ValueError):
        create_user('ab', 'secret1', factory=factory)


def test_api_provider_posts_form_and_keeps_token(monkeypatch) -> None:
    calls = []

    def fake_post(url, data, timeout):
        calls.append((url, data))
        return SimpleNamespace(raise_for_status=lambda: None, json=lambda: {'access_token': 'tok'})

    monkeypatch.setattr(auth_provider.requests, 'post', fake_post)
    provider = ApiAuthProvider('http://api.local/')

    provider.sign_in('username', {'username': 'mario', 'password': 'secret1'})

    assert provider.token == 'tok'
    assert calls == [('http://api.local/api/auth/login', {'username': 'mario', 'password': 'secret1'})]


def test_api_provider_maps_http_errors(monkeypatch) -> None:
    def fake_post(url, data, timeout):
        def raise_for_status():
            raise requests.HTTPError('401 Unauthorized')

        return SimpleNamespace(raise_for_status=raise_for_status, json=lambda: {})

    monkeypatch.setattr(auth_provider.requests, 'post', fake_post)

    with pytest.raises(AuthenticationError):
        ApiAuthProvider('http://api.local').sign_in('username', {'username': 'mario', 'password': 'secret1'})


def test_build_provider() -> None:
    assert isinstance(build_provider('local'), LocalAuthProvider)
    assert isinstance(build_provider('api'), ApiAuthProvider)
    with pytest.raises(ValueError):
        build_provider('ldap')
