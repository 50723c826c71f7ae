import pytest

from synergysphere.conftest import TEST_PASSWORD
from synergysphere.conftest import make_user
from synergysphere.users.auth_backends import UsernameOrEmailBackend

pytestmark = pytest.mark.django_db


class TestUsernameOrEmailBackend:
    def setup_method(self):
        self.backend = UsernameOrEmailBackend()

    def test_authenticate_with_username(self):
        user = make_user("test")
        assert self.backend.authenticate(None, username="test", password=TEST_PASSWORD) == user

    def test_authenticate_with_email_case_insensitive(self):
        user = make_user("test")
        assert (
            self.backend.authenticate(
                None,
                username="TEST@example.com",
                password=TEST_PASSWORD,
            )
            == user
        )

    def test_wrong_password(self):
        make_user("test")
        assert self.backend.authenticate(None, username="test", password="nope") is None

    def test_unknown_user(self):
        assert self.backend.authenticate(None, username="ghost", password="x") is None

    def test_inactive_user(self):
        make_user("test", is_active=False)
        assert (
            self.backend.authenticate(None, username="test", password=TEST_PASSWORD)
            is None
        )
