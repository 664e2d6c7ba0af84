"""Tests for AuthService with a mocked Cassandra session."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra.cluster import Session

from blogapi.auth.models import User
from blogapi.auth.schemas import RegisterRequest
from blogapi.auth.security import TokenSigner, hash_password
from blogapi.auth.service import AuthService, InvalidCredentialsError, UserExistsError


def _result(row=None):
    result = Mock()
    result.one.return_value = row
    return result


def _user_row(email: str = "a@x.com", password: str = "secret1") -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid4(),
        username="alice",
        email=email,
        password_hash=hash_password(password),
        created_at=None,
    )


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda query: query)
    session.aexecute = AsyncMock(return_value=_result())
    return session


@pytest.fixture
def auth_service(mock_session) -> AuthService:
    return AuthService(
        session=mock_session, keyspace="test_keyspace", signer=TokenSigner("k")
    )


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_inserts_hashed_user(self, auth_service, mock_session) -> None:
        data = RegisterRequest(username="alice", email="A@X.com", password="secret1")

        user = await auth_service.register_user(data)

        assert user.email == "a@x.com"
        assert user.password_hash.startswith("$argon2id$")
        insert_call = mock_session.aexecute.await_args_list[-1]
        assert "INSERT INTO test_keyspace.users" in insert_call.args[0]
        assert insert_call.args[1][0] == user.id

    @pytest.mark.asyncio
    async def test_duplicate_username(self, auth_service, mock_session) -> None:
        mock_session.aexecute = AsyncMock(return_value=_result(_user_row()))
        data = RegisterRequest(username="alice", email="b@x.com", password="secret1")

        with pytest.raises(UserExistsError) as exc_info:
            await auth_service.register_user(data)

        assert exc_info.value.field == "username"
        assert exc_info.value.code == "user_exists"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, auth_service, mock_session) -> None:
        mock_session.aexecute = AsyncMock(
            side_effect=[_result(None), _result(_user_row())]
        )
        data = RegisterRequest(username="bob", email="a@x.com", password="secret1")

        with pytest.raises(UserExistsError) as exc_info:
            await auth_service.register_user(data)

        assert exc_info.value.field == "email"


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_success(self, auth_service, mock_session) -> None:
        row = _user_row()
        mock_session.aexecute = AsyncMock(return_value=_result(row))

        user = await auth_service.authenticate_user("A@x.com", "secret1")

        assert user.id == row.id
        assert mock_session.aexecute.await_args.args[1] == ["a@x.com"]

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_look_the_same(
        self, auth_service, mock_session
    ) -> None:
        mock_session.aexecute = AsyncMock(return_value=_result(None))
        with pytest.raises(InvalidCredentialsError) as unknown:
            await auth_service.authenticate_user("nobody@x.com", "secret1")

        mock_session.aexecute = AsyncMock(return_value=_result(_user_row()))
        with pytest.raises(InvalidCredentialsError) as wrong:
            await auth_service.authenticate_user("a@x.com", "wrong-pass")

        assert unknown.value.message == wrong.value.message == "Invalid credentials"


class TestLookups:
    @pytest.mark.asyncio
    async def test_get_users_by_ids_empty_skips_query(
        self, auth_service, mock_session
    ) -> None:
        assert await auth_service.get_users_by_ids([]) == {}
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_users_by_ids_dedupes(self, auth_service, mock_session) -> None:
        row = _user_row()
        mock_session.aexecute = AsyncMock(return_value=[row])

        users = await auth_service.get_users_by_ids([row.id, row.id])

        assert list(users) == [row.id]
        assert mock_session.aexecute.await_args.args[1] == [[row.id]]


def test_auth_response_token_carries_identity(auth_service) -> None:
    account = User(username="alice", email="a@x.com", password_hash="h")
    response = auth_service.to_auth_response(account)

    payload = auth_service.signer.decode_token(response.token)
    assert payload["sub"] == str(account.id)
    assert payload["username"] == "alice"
    assert response.user.email == "a@x.com"
