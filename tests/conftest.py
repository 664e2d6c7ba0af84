"""Shared fixtures.

``FakeCassandraSession`` understands the handful of statement shapes the
services prepare (INSERT upserts, ``SELECT *`` with an optional single
``=``/``IN`` predicate, ``DELETE ... WHERE id = ?``) and keeps rows in dicts,
so routers and services can be exercised end to end without a cluster.
"""

import os
import re
import tempfile
from collections import defaultdict
from collections.abc import Iterator
from types import SimpleNamespace
from typing import Any

import pytest


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("AUTH_SECRET_KEY", "test-secret-key-for-signing-tokens-32c")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="blogapi-uploads-"))

from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from blogapi.auth.security import TokenSigner, get_token_signer  # noqa: E402
from blogapi.config import get_settings  # noqa: E402
from blogapi.storage.dependencies import get_storage_service  # noqa: E402
from blogapi.storage.service import LocalStorageService  # noqa: E402


KEYSPACE = "blogapi_test"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 56

_INSERT_RE = re.compile(r"^INSERT INTO \w+\.(\w+) \(([^)]*)\) VALUES", re.IGNORECASE)
_SELECT_RE = re.compile(
    r"^SELECT \* FROM \w+\.(\w+)(?: WHERE (\w+) (=|IN) \?)?$", re.IGNORECASE
)
_DELETE_RE = re.compile(r"^DELETE FROM \w+\.(\w+) WHERE (\w+) = \?$", re.IGNORECASE)


# ==============================================================================
# Fake Cassandra
# ==============================================================================


class FakeStatement:
    def __init__(self, query: str) -> None:
        self.query = " ".join(query.split())


class FakeResult:
    def __init__(self, rows: list[SimpleNamespace]) -> None:
        self._rows = rows

    def one(self) -> SimpleNamespace | None:
        return self._rows[0] if self._rows else None

    def all(self) -> list[SimpleNamespace]:
        return list(self._rows)

    def __iter__(self) -> Iterator[SimpleNamespace]:
        return iter(self._rows)


class FakeCassandraSession:
    """In-memory stand-in for an ``aexecute``-capable driver session."""

    def __init__(self) -> None:
        self.tables: dict[str, dict[Any, dict[str, Any]]] = defaultdict(dict)
        self.executed: list[str] = []

    def prepare(self, query: str) -> FakeStatement:
        return FakeStatement(query)

    async def aexecute(self, statement: Any, params: Any = None) -> FakeResult:
        query = (
            statement.query
            if isinstance(statement, FakeStatement)
            else " ".join(str(statement).split())
        )
        params = list(params or [])
        self.executed.append(query)

        if match := _INSERT_RE.match(query):
            table, columns = match.group(1), [
                c.strip() for c in match.group(2).split(",")
            ]
            row = dict(zip(columns, params, strict=True))
            self.tables[table][row["id"]] = row
            return FakeResult([])

        if match := _SELECT_RE.match(query):
            table, column, op = match.groups()
            rows = list(self.tables[table].values())
            if column == "id" and op == "=":
                rows = [self.tables[table][params[0]]] if params[0] in self.tables[
                    table
                ] else []
            elif op == "=":
                rows = [r for r in rows if r.get(column) == params[0]]
            elif op and op.upper() == "IN":
                wanted = set(params[0])
                rows = [r for r in rows if r.get(column) in wanted]
            return FakeResult([SimpleNamespace(**r) for r in rows])

        if match := _DELETE_RE.match(query):
            self.tables[match.group(1)].pop(params[0], None)
            return FakeResult([])

        msg = f"Unsupported statement: {query}"
        raise AssertionError(msg)


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def session() -> FakeCassandraSession:
    return FakeCassandraSession()


@pytest.fixture
def signer() -> TokenSigner:
    return get_token_signer()


@pytest.fixture
def storage(tmp_path) -> LocalStorageService:
    return LocalStorageService(get_settings(), upload_dir=tmp_path)


@pytest.fixture
def app(session: FakeCassandraSession, storage: LocalStorageService) -> FastAPI:
    """App wired to the fake session; lifespan (real Cassandra) is not run."""
    from blogapi.main import create_app, init_services

    application = create_app()
    init_services(application, session, KEYSPACE)
    application.dependency_overrides[get_storage_service] = lambda: storage
    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def bare_client() -> TestClient:
    """Client for an app whose database never came up."""
    from blogapi.main import create_app

    return TestClient(create_app())


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client: TestClient):
    """Register a user through the API and return ``(token, user)``."""

    def _register(
        username: str = "alice", email: str = "a@x.com", password: str = "secret1"
    ) -> tuple[str, dict[str, Any]]:
        response = client.post(
            "/auth/register",
            json={"username": username, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        data = response.json()
        return data["token"], data["user"]

    return _register


@pytest.fixture
def make_category(client: TestClient):
    def _make(token: str, name: str = "Tech") -> dict[str, Any]:
        response = client.post(
            "/categories", json={"name": name}, headers=auth_header(token)
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make


@pytest.fixture
def make_post(client: TestClient):
    def _make(
        token: str,
        author_id: str,
        category_id: str,
        title: str = "Hello World",
        content: str = "First post",
        **extra: str,
    ) -> dict[str, Any]:
        response = client.post(
            "/posts",
            data={
                "title": title,
                "content": content,
                "author": author_id,
                "category": category_id,
                **extra,
            },
            headers=auth_header(token),
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _make
