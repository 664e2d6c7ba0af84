"""Tests for registration validators and request schemas."""

import pytest
from pydantic import ValidationError

from blogapi.auth.schemas import LoginRequest, RegisterRequest
from blogapi.auth.validators import validate_password, validate_username


class TestValidators:
    @pytest.mark.parametrize("password", ["secret", "secret1", "a" * 64])
    def test_password_ok(self, password: str) -> None:
        assert validate_password(password).valid

    def test_password_too_short(self) -> None:
        result = validate_password("12345")
        assert not result.valid
        assert result.message == "Password must be at least 6 characters"

    @pytest.mark.parametrize(
        "username", ["alice", "bob.smith", "x_y-z", "Ana99", "John Doe"]
    )
    def test_username_ok(self, username: str) -> None:
        assert validate_username(username).valid

    @pytest.mark.parametrize("username", ["", "   ", "a" * 51])
    def test_username_rejected(self, username: str) -> None:
        assert not validate_username(username).valid


class TestRegisterRequest:
    def test_valid(self) -> None:
        data = RegisterRequest(username=" alice ", email="A@X.com", password="secret1")
        assert data.username == "alice"

    def test_invalid_email(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RegisterRequest(username="alice", email="not-an-email", password="secret1")
        assert exc_info.value.errors()[0]["loc"] == ("email",)

    def test_short_password(self) -> None:
        with pytest.raises(ValidationError, match="at least 6"):
            RegisterRequest(username="alice", email="a@x.com", password="123")

    def test_missing_fields(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            RegisterRequest()  # type: ignore[call-arg]
        fields = {err["loc"][0] for err in exc_info.value.errors()}
        assert fields == {"username", "email", "password"}


def test_login_requires_password() -> None:
    with pytest.raises(ValidationError):
        LoginRequest(email="a@x.com", password="")
