"""Async HTTP client for the blog API.

Drives the same endpoints a browser front end would: sign-up and sign-in
(the token is kept for later calls), browsing and searching posts, writing
posts and comments, and moderating comments on one's own posts.

    async with BlogClient("http://localhost:5000") as blog:
        await blog.login("a@x.com", "secret1")
        page = await blog.list_posts(search="hello")
"""

from typing import Any

import httpx
import structlog


logger = structlog.get_logger(__name__)


class BlogClientError(Exception):
    """Base client error (network failures and API errors)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class BlogApiError(BlogClientError):
    """Non-2xx response from the API.

    ``message`` is the server's ``error`` text, or the field messages joined
    when the server answered with ``errors``.
    """

    def __init__(self, status_code: int, payload: Any) -> None:
        self.status_code = status_code
        self.payload = payload
        super().__init__(self._message_from(payload, status_code))

    @property
    def field_errors(self) -> list[dict[str, str]]:
        if isinstance(self.payload, dict):
            return list(self.payload.get("errors") or [])
        return []

    @staticmethod
    def _message_from(payload: Any, status_code: int) -> str:
        if isinstance(payload, dict):
            if payload.get("error"):
                return str(payload["error"])
            errors = payload.get("errors")
            if errors:
                return "; ".join(str(e.get("message", e)) for e in errors)
        if isinstance(payload, str) and payload:
            return payload
        return f"API error ({status_code})"


class BlogClient:
    """Client for the blog HTTP API."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token = token
        self.user: dict[str, Any] | None = None
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout, transport=transport
        )

    async def __aenter__(self) -> "BlogClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(
                method, path, headers=self._headers(), **kwargs
            )
        except httpx.TimeoutException as e:
            logger.error("blog_api_timeout", method=method, path=path)
            raise BlogClientError("Request timed out") from e
        except httpx.RequestError as e:
            logger.error("blog_api_request_error", method=method, path=path, error=str(e))
            raise BlogClientError(f"Request failed: {e}") from e

        content_type = response.headers.get("content-type", "")
        data = response.json() if "application/json" in content_type else response.text

        if response.is_error:
            logger.debug(
                "blog_api_error", method=method, path=path, status_code=response.status_code
            )
            raise BlogApiError(response.status_code, data)
        return data

    # ==========================================================================
    # Auth
    # ==========================================================================

    async def _authenticate(self, path: str, body: dict[str, str]) -> dict[str, Any]:
        data = await self._request("POST", path, json=body)
        self.token = data["token"]
        self.user = data["user"]
        return data

    async def register(self, username: str, email: str, password: str) -> dict[str, Any]:
        """Create an account and sign in as it."""
        return await self._authenticate(
            "/auth/register",
            {"username": username, "email": email, "password": password},
        )

    async def login(self, email: str, password: str) -> dict[str, Any]:
        return await self._authenticate(
            "/auth/login", {"email": email, "password": password}
        )

    def logout(self) -> None:
        self.token = None
        self.user = None

    # ==========================================================================
    # Categories
    # ==========================================================================

    async def list_categories(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/categories")

    async def create_category(self, name: str) -> dict[str, Any]:
        return await self._request("POST", "/categories", json={"name": name})

    # ==========================================================================
    # Posts
    # ==========================================================================

    async def list_posts(
        self,
        page: int = 1,
        limit: int = 5,
        search: str | None = None,
        category: str | None = None,
    ) -> dict[str, Any]:
        """One page of posts as ``{posts, total, page, pages}``."""
        params: dict[str, str | int] = {"page": page, "limit": limit}
        if search:
            params["search"] = search
        if category:
            params["category"] = category
        return await self._request("GET", "/posts", params=params)

    async def get_post(self, post_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/posts/{post_id}")

    async def create_post(
        self,
        title: str,
        content: str,
        category: str,
        author: str | None = None,
        slug: str | None = None,
        image: bytes | None = None,
        image_filename: str = "image.png",
        image_content_type: str = "image/png",
    ) -> dict[str, Any]:
        """Create a post; ``author`` defaults to the signed-in user."""
        form = {
            "title": title,
            "content": content,
            "category": category,
            "author": author or (self.user or {}).get("id", ""),
        }
        if slug:
            form["slug"] = slug
        files = (
            {"image": (image_filename, image, image_content_type)}
            if image is not None
            else None
        )
        return await self._request("POST", "/posts", data=form, files=files)

    async def update_post(self, post_id: str, **changes: Any) -> dict[str, Any]:
        """Partially update a post, e.g. ``update_post(pid, title="New")``."""
        return await self._request("PUT", f"/posts/{post_id}", json=changes)

    async def delete_post(self, post_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/posts/{post_id}")

    async def upload_image(
        self,
        content: bytes,
        filename: str = "image.png",
        content_type: str = "image/png",
    ) -> str:
        """Upload an image and return its public path."""
        data = await self._request(
            "POST", "/posts/upload", files={"image": (filename, content, content_type)}
        )
        return data["imageUrl"]

    # ==========================================================================
    # Comments and Replies
    # ==========================================================================

    async def add_comment(
        self, post_id: str, content: str, name: str | None = None
    ) -> list[dict[str, Any]]:
        """Comment as the signed-in user, or as guest ``name`` when signed out."""
        body: dict[str, str] = {"content": content}
        if name:
            body["name"] = name
        return await self._request("POST", f"/posts/{post_id}/comments", json=body)

    async def add_reply(
        self, post_id: str, comment_id: str, content: str, name: str | None = None
    ) -> list[dict[str, Any]]:
        body: dict[str, str] = {"content": content}
        if name:
            body["name"] = name
        return await self._request(
            "POST", f"/posts/{post_id}/comments/{comment_id}/replies", json=body
        )

    async def delete_comment(self, post_id: str, comment_id: str) -> dict[str, Any]:
        return await self._request(
            "DELETE", f"/posts/{post_id}/comments/{comment_id}"
        )

    async def delete_reply(
        self, post_id: str, comment_id: str, reply_id: str
    ) -> dict[str, Any]:
        return await self._request(
            "DELETE", f"/posts/{post_id}/comments/{comment_id}/replies/{reply_id}"
        )
