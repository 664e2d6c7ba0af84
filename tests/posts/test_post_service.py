"""Tests for PostService against the in-memory session."""

import asyncio
from uuid import UUID, uuid4

import pytest

from blogapi.auth.schemas import RegisterRequest
from blogapi.auth.security import TokenSigner
from blogapi.auth.service import AuthService
from blogapi.categories.service import CategoryService
from blogapi.posts.schemas import CreatePostRequest, UpdatePostRequest
from blogapi.posts.service import (
    CommentNotFoundError,
    PermissionDeniedError,
    PostNotFoundError,
    PostService,
    PostValidationError,
    ReplyNotFoundError,
)
from tests.conftest import KEYSPACE, FakeCassandraSession


@pytest.fixture
def auth_service(session: FakeCassandraSession) -> AuthService:
    return AuthService(session=session, keyspace=KEYSPACE, signer=TokenSigner("k"))


@pytest.fixture
def category_service(session: FakeCassandraSession) -> CategoryService:
    return CategoryService(session=session, keyspace=KEYSPACE)


@pytest.fixture
def post_service(session, auth_service, category_service) -> PostService:
    return PostService(
        session=session,
        keyspace=KEYSPACE,
        users=auth_service,
        categories=category_service,
    )


@pytest.fixture
async def alice(auth_service: AuthService):
    return await auth_service.register_user(
        RegisterRequest(username="alice", email="a@x.com", password="secret1")
    )


@pytest.fixture
async def tech(category_service: CategoryService):
    return await category_service.create_category("Tech")


async def _create(post_service, author_id: UUID, category_id: UUID, title="Hello World"):
    return await post_service.create_post(
        CreatePostRequest(
            title=title, content="body", author=author_id, category=category_id
        )
    )


class TestPosts:
    @pytest.mark.asyncio
    async def test_create_resolves_references(self, post_service, alice, tech) -> None:
        post = await _create(post_service, alice.id, tech.id)

        assert post.slug == "hello-world"
        assert post.author.username == "alice"
        assert post.category.name == "Tech"

    @pytest.mark.asyncio
    async def test_dangling_references_resolve_to_none(self, post_service) -> None:
        post = await _create(post_service, uuid4(), uuid4())

        fetched = await post_service.get_post(post.id)

        assert fetched.author is None
        assert fetched.category is None

    @pytest.mark.asyncio
    async def test_get_unknown(self, post_service) -> None:
        with pytest.raises(PostNotFoundError):
            await post_service.get_post(uuid4())

    @pytest.mark.asyncio
    async def test_update_is_partial(self, post_service, alice, tech) -> None:
        post = await _create(post_service, alice.id, tech.id)

        updated = await post_service.update_post(
            post.id, UpdatePostRequest(title="New title")
        )

        assert updated.title == "New title"
        assert updated.content == "body"
        assert updated.slug == "hello-world"
        assert updated.updated_at >= post.updated_at

    @pytest.mark.asyncio
    async def test_update_unknown(self, post_service) -> None:
        with pytest.raises(PostNotFoundError):
            await post_service.update_post(uuid4(), UpdatePostRequest(title="x"))

    @pytest.mark.asyncio
    async def test_delete_by_non_author(self, post_service, alice, tech) -> None:
        post = await _create(post_service, alice.id, tech.id)

        with pytest.raises(PermissionDeniedError):
            await post_service.delete_post(post.id, uuid4())

        assert (await post_service.get_post(post.id)).id == post.id

    @pytest.mark.asyncio
    async def test_delete_unknown_is_not_found_before_forbidden(
        self, post_service
    ) -> None:
        with pytest.raises(PostNotFoundError):
            await post_service.delete_post(uuid4(), uuid4())

    @pytest.mark.asyncio
    async def test_delete_by_author(self, post_service, alice, tech) -> None:
        post = await _create(post_service, alice.id, tech.id)

        await post_service.delete_post(post.id, alice.id)

        with pytest.raises(PostNotFoundError):
            await post_service.get_post(post.id)


class TestListing:
    @pytest.mark.asyncio
    async def test_search_matches_author_and_pages(
        self, post_service, auth_service, alice, tech
    ) -> None:
        bob = await auth_service.register_user(
            RegisterRequest(username="bob", email="b@x.com", password="secret1")
        )
        for i in range(6):
            await _create(post_service, alice.id, tech.id, title=f"Alice post {i}")
        await _create(post_service, bob.id, tech.id, title="Untitled")

        page = await post_service.list_posts(page=2, limit=5, search="ALICE")

        assert page.total == 6
        assert page.pages == 2
        assert len(page.posts) == 1
        assert all(p.author.username == "alice" for p in page.posts)

    @pytest.mark.asyncio
    async def test_category_filter_by_id(
        self, post_service, category_service, alice, tech
    ) -> None:
        food = await category_service.create_category("Food")
        await _create(post_service, alice.id, tech.id, title="Code")
        await _create(post_service, alice.id, food.id, title="Soup")

        page = await post_service.list_posts(category=str(food.id))

        assert [p.title for p in page.posts] == ["Soup"]

    @pytest.mark.asyncio
    async def test_page_beyond_end(self, post_service, alice, tech) -> None:
        await _create(post_service, alice.id, tech.id)

        page = await post_service.list_posts(page=5, limit=5)

        assert page.posts == []
        assert page.total == 1


class TestComments:
    @pytest.mark.asyncio
    async def test_validation_precedes_lookup(self, post_service) -> None:
        with pytest.raises(PostValidationError) as exc_info:
            await post_service.add_comment(uuid4(), content="nice")

        assert exc_info.value.message == "Name and content are required for guest comments."

    @pytest.mark.asyncio
    async def test_empty_content_rejected_even_for_users(self, post_service) -> None:
        with pytest.raises(PostValidationError):
            await post_service.add_comment(uuid4(), content="  ", user_id=uuid4())

    @pytest.mark.asyncio
    async def test_unknown_post(self, post_service) -> None:
        with pytest.raises(PostNotFoundError):
            await post_service.add_comment(uuid4(), content="hi", name="Bob")

    @pytest.mark.asyncio
    async def test_comments_keep_append_order(self, post_service, alice, tech) -> None:
        post = await _create(post_service, alice.id, tech.id)

        for i in range(4):
            comments = await post_service.add_comment(post.id, f"c{i}", name="Bob")

        assert [c.content for c in comments] == ["c0", "c1", "c2", "c3"]
        fetched = await post_service.get_post(post.id)
        assert [c.content for c in fetched.comments] == ["c0", "c1", "c2", "c3"]

    @pytest.mark.asyncio
    async def test_concurrent_comments_are_not_lost(
        self, post_service, alice, tech
    ) -> None:
        post = await _create(post_service, alice.id, tech.id)

        await asyncio.gather(
            *(post_service.add_comment(post.id, f"c{i}", name="Bob") for i in range(10))
        )

        fetched = await post_service.get_post(post.id)
        assert len(fetched.comments) == 10

    @pytest.mark.asyncio
    async def test_content_is_stored_as_given(self, post_service, alice, tech) -> None:
        post = await _create(post_service, alice.id, tech.id)

        (comment,) = await post_service.add_comment(
            post.id, '  a < b & "c"  ', name="Eve"
        )
        (reply,) = await post_service.add_reply(
            post.id, comment.id, "<script>x</script>", name="Bob"
        )

        assert comment.content == 'a < b & "c"'
        assert reply.content == "<script>x</script>"
        fetched = await post_service.get_post(post.id)
        assert fetched.comments[0].content == 'a < b & "c"'

    @pytest.mark.asyncio
    async def test_registered_commenter_recorded_by_id(
        self, post_service, alice, tech
    ) -> None:
        post = await _create(post_service, alice.id, tech.id)

        (comment,) = await post_service.add_comment(
            post.id, "hi", name="Ignored", user_id=alice.id
        )

        assert comment.user == alice.id
        assert comment.name is None

    @pytest.mark.asyncio
    async def test_reply_to_unknown_comment(self, post_service, alice, tech) -> None:
        post = await _create(post_service, alice.id, tech.id)

        with pytest.raises(CommentNotFoundError):
            await post_service.add_reply(post.id, uuid4(), "hi", name="Bob")

    @pytest.mark.asyncio
    async def test_reply_guest_message(self, post_service) -> None:
        with pytest.raises(PostValidationError, match="guest replies"):
            await post_service.add_reply(uuid4(), uuid4(), "hi")


class TestModeration:
    @pytest.fixture
    async def thread(self, post_service, alice, tech):
        post = await _create(post_service, alice.id, tech.id)
        (comment,) = await post_service.add_comment(post.id, "c", name="Bob")
        (reply,) = await post_service.add_reply(post.id, comment.id, "r", name="Eve")
        return post, comment, reply

    @pytest.mark.asyncio
    async def test_author_deletes_others_comment(
        self, post_service, alice, thread
    ) -> None:
        post, comment, _ = thread

        await post_service.delete_comment(post.id, comment.id, alice.id)

        assert (await post_service.get_post(post.id)).comments == []

    @pytest.mark.asyncio
    async def test_author_deletes_others_reply(self, post_service, alice, thread) -> None:
        post, comment, reply = thread

        await post_service.delete_reply(post.id, comment.id, reply.id, alice.id)

        (remaining,) = (await post_service.get_post(post.id)).comments
        assert remaining.id == comment.id
        assert remaining.replies == []

    @pytest.mark.asyncio
    async def test_non_author_forbidden_before_comment_lookup(
        self, post_service, thread
    ) -> None:
        post, _, _ = thread

        with pytest.raises(PermissionDeniedError, match="delete comments"):
            await post_service.delete_comment(post.id, uuid4(), uuid4())

    @pytest.mark.asyncio
    async def test_missing_comment_and_reply(self, post_service, alice, thread) -> None:
        post, comment, _ = thread

        with pytest.raises(CommentNotFoundError):
            await post_service.delete_reply(post.id, uuid4(), uuid4(), alice.id)
        with pytest.raises(ReplyNotFoundError):
            await post_service.delete_reply(post.id, comment.id, uuid4(), alice.id)
