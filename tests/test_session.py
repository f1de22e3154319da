"""
Unit tests for the session context.
"""

import pytest

from conftest import make_user

from spa_turnos.api.errors import AuthenticationError
from spa_turnos.api.session import SessionContext, decode_user, encode_user


class TestSessionContext:
    def test_anonymous(self):
        session = SessionContext()
        assert not session.is_authenticated
        assert session.user_id is None
        with pytest.raises(AuthenticationError):
            session.require_user()

    def test_login_and_roles(self):
        session = SessionContext()
        session.login("tok", make_user("p1", role="profesional"))

        assert session.is_authenticated
        assert session.is_professional
        assert not session.is_admin
        assert session.require_token() == "tok"

    def test_cookie_round_trip(self):
        session = SessionContext(token="tok", user=make_user("u1", role="admin"))
        cookies = session.to_cookies()

        restored = SessionContext.from_cookies(cookies)
        assert restored.token == "tok"
        assert restored.user_id == "u1"
        assert restored.is_admin

    def test_user_cookie_is_ascii_for_any_name(self):
        """Names outside Latin-1 are stored as a plain ASCII cookie value."""
        user = make_user("u7", first_name="Łucja", last_name="Nguyễn")
        value = encode_user(user)

        assert value.isascii()
        assert "=" not in value
        restored = decode_user(value)
        assert restored.first_name == "Łucja"
        assert restored.last_name == "Nguyễn"

    def test_malformed_user_cookie_is_anonymous(self):
        restored = SessionContext.from_cookies({"token": "tok", "user": "{not json"})
        assert restored.user is None
        assert not restored.is_authenticated

    def test_anonymous_has_no_cookies(self):
        assert SessionContext(token="tok").to_cookies() == {}
