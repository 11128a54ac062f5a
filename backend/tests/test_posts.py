"""Tests for post endpoints."""

from datetime import datetime, timedelta, timezone
from io import BytesIO

import pytest
from httpx import AsyncClient
from PIL import Image
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from models import Comment, Like, Post, User
from services import posts as post_service
from services.errors import InternalError


def make_image_bytes() -> bytes:
    image = Image.new("RGB", (1200, 800), color=(0, 200, 100))
    buffer = BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


async def insert_posts(
    session: AsyncSession,
    author: User,
    count: int,
    *,
    start: datetime | None = None,
) -> list[Post]:
    """Insert posts one minute apart, oldest first."""
    base = start or datetime(2026, 1, 1, tzinfo=timezone.utc)
    posts = [
        Post(
            user_id=author.id,
            image_key=f"posts/{author.id}/seed-{index}.jpg",
            caption=f"post {index}",
            created_at=base + timedelta(minutes=index),
            updated_at=base + timedelta(minutes=index),
        )
        for index in range(count)
    ]
    session.add_all(posts)
    await session.commit()
    return posts


@pytest.mark.asyncio
async def test_create_post_from_multipart_upload(
    async_client: AsyncClient,
    db_session: AsyncSession,
    create_user,
    auth_headers,
    object_store,
):
    author = await create_user("author")

    response = await async_client.post(
        "/api/v1/posts",
        data={"caption": "  First shot!  "},
        files={"image": ("photo.png", make_image_bytes(), "image/png")},
        headers=auth_headers(author),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["caption"] == "First shot!"
    assert body["user_id"] == author.id
    assert body["user"]["name"] == "author"
    assert body["likes_count"] == 0
    assert body["comments_count"] == 0
    assert body["isLiked"] is False
    assert body["image_key"].startswith(f"posts/{author.id}/")
    assert body["image_url"] == f"{settings.media_public_base_url.rstrip('/')}/{body['image_key']}"

    stored_bytes, content_type = object_store.objects[body["image_key"]]
    assert content_type == "image/jpeg"
    with Image.open(BytesIO(stored_bytes)) as stored:
        assert max(stored.size) == 1080

    result = await db_session.execute(select(Post).where(Post.id == body["id"]))
    assert result.scalar_one().image_key == body["image_key"]


@pytest.mark.asyncio
async def test_create_post_from_presigned_reference(
    async_client: AsyncClient,
    create_user,
    auth_headers,
    object_store,
):
    author = await create_user("author")
    headers = auth_headers(author)

    upload = await async_client.post("/api/v1/media/uploads", headers=headers)
    assert upload.status_code == 201
    upload_body = upload.json()
    object_key = upload_body["object_key"]
    assert object_key.startswith(f"posts/{author.id}/")
    assert upload_body["upload_url"].startswith("http://minio.test/")
    assert object_store.presigned == [(object_key, settings.presigned_upload_ttl_seconds)]

    response = await async_client.post(
        "/api/v1/posts",
        json={"imageRef": object_key, "caption": "hello"},
        headers=headers,
    )

    assert response.status_code == 201
    assert response.json()["image_key"] == object_key
    assert response.json()["caption"] == "hello"


@pytest.mark.asyncio
async def test_create_post_rejects_reference_outside_caller_prefix(
    async_client: AsyncClient,
    create_user,
    auth_headers,
):
    author = await create_user("author")
    other = await create_user("other")

    response = await async_client.post(
        "/api/v1/posts",
        json={"imageRef": f"posts/{other.id}/stolen.jpg"},
        headers=auth_headers(author),
    )

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_create_post_validates_body(
    async_client: AsyncClient,
    create_user,
    auth_headers,
):
    author = await create_user("author")
    headers = auth_headers(author)

    missing_ref = await async_client.post("/api/v1/posts", json={"caption": "x"}, headers=headers)
    assert missing_ref.status_code == 400

    too_long = await async_client.post(
        "/api/v1/posts",
        json={"imageRef": f"posts/{author.id}/a.jpg", "caption": "x" * 2201},
        headers=headers,
    )
    assert too_long.status_code == 400

    no_image = await async_client.post("/api/v1/posts", data={"caption": "x"}, headers=headers)
    assert no_image.status_code == 400

    not_an_image = await async_client.post(
        "/api/v1/posts",
        files={"image": ("photo.png", b"not an image", "image/png")},
        headers=headers,
    )
    assert not_an_image.status_code == 400


@pytest.mark.asyncio
async def test_create_post_rejects_oversized_upload(
    async_client: AsyncClient,
    create_user,
    auth_headers,
    monkeypatch: pytest.MonkeyPatch,
    object_store,
):
    author = await create_user("author")
    monkeypatch.setattr(settings, "upload_max_bytes", 16)

    response = await async_client.post(
        "/api/v1/posts",
        files={"image": ("photo.png", make_image_bytes(), "image/png")},
        headers=auth_headers(author),
    )

    assert response.status_code == 413
    assert object_store.objects == {}


@pytest.mark.asyncio
async def test_create_post_requires_session(async_client: AsyncClient, make_token):
    anonymous = await async_client.post("/api/v1/posts", json={"imageRef": "posts/x/a.jpg"})
    assert anonymous.status_code == 401
    assert anonymous.headers["www-authenticate"] == "Bearer"

    forged = await async_client.post(
        "/api/v1/posts",
        json={"imageRef": "posts/x/a.jpg"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert forged.status_code == 401


@pytest.mark.asyncio
async def test_create_post_rejects_anonymous_before_reading_body(
    async_client: AsyncClient,
    object_store,
):
    empty_json = await async_client.post("/api/v1/posts", json={})
    plain_text = await async_client.post(
        "/api/v1/posts",
        content=b"not a post",
        headers={"Content-Type": "text/plain"},
    )
    anonymous_upload = await async_client.post(
        "/api/v1/posts",
        files={"image": ("photo.png", make_image_bytes(), "image/png")},
    )

    assert (empty_json.status_code, plain_text.status_code) == (401, 401)
    assert anonymous_upload.status_code == 401
    assert object_store.objects == {}


@pytest.mark.asyncio
async def test_uploaded_image_removed_when_insert_fails(
    async_client: AsyncClient,
    create_user,
    auth_headers,
    monkeypatch: pytest.MonkeyPatch,
    object_store,
):
    author = await create_user("author")

    async def failing_create_post(*args, **kwargs):
        raise InternalError("Failed to create post")

    monkeypatch.setattr(post_service, "create_post", failing_create_post)

    response = await async_client.post(
        "/api/v1/posts",
        files={"image": ("photo.png", make_image_bytes(), "image/png")},
        headers=auth_headers(author),
    )

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to create post"
    assert object_store.objects == {}
    assert len(object_store.deleted) == 1
    assert object_store.deleted[0].startswith(f"posts/{author.id}/")


@pytest.mark.asyncio
async def test_get_post_reports_viewer_like_state(
    async_client: AsyncClient,
    db_session: AsyncSession,
    create_user,
    auth_headers,
):
    author = await create_user("author")
    fan = await create_user("fan")
    (post,) = await insert_posts(db_session, author, 1)
    db_session.add(Like(post_id=post.id, user_id=fan.id))
    await db_session.commit()

    anonymous = await async_client.get(f"/api/v1/posts/{post.id}")
    as_fan = await async_client.get(f"/api/v1/posts/{post.id}", headers=auth_headers(fan))
    as_author = await async_client.get(f"/api/v1/posts/{post.id}", headers=auth_headers(author))

    assert anonymous.status_code == 200
    assert anonymous.json()["likes_count"] == 1
    assert anonymous.json()["isLiked"] is False
    assert as_fan.json()["isLiked"] is True
    assert as_author.json()["isLiked"] is False


@pytest.mark.asyncio
async def test_get_missing_post_returns_404(async_client: AsyncClient):
    response = await async_client.get("/api/v1/posts/does-not-exist")

    assert response.status_code == 404
    assert response.json()["detail"] == "Post not found"


@pytest.mark.asyncio
async def test_feed_pages_are_disjoint_and_newest_first(
    async_client: AsyncClient,
    db_session: AsyncSession,
    create_user,
):
    author = await create_user("author")
    posts = await insert_posts(db_session, author, 15)
    expected_ids = [post.id for post in reversed(posts)]

    first = await async_client.get("/api/v1/posts", params={"limit": 10, "offset": 0})
    second = await async_client.get("/api/v1/posts", params={"limit": 10, "offset": 10})

    assert first.status_code == 200
    assert first.json()["hasMore"] is True
    assert first.headers["x-next-offset"] == "10"
    assert second.json()["hasMore"] is False
    assert "x-next-offset" not in second.headers

    first_ids = [item["id"] for item in first.json()["posts"]]
    second_ids = [item["id"] for item in second.json()["posts"]]
    assert first_ids == expected_ids[:10]
    assert second_ids == expected_ids[10:]


@pytest.mark.asyncio
async def test_feed_has_more_is_false_on_exact_boundary(
    async_client: AsyncClient,
    db_session: AsyncSession,
    create_user,
):
    author = await create_user("author")
    await insert_posts(db_session, author, 10)

    response = await async_client.get("/api/v1/posts", params={"limit": 10})

    assert len(response.json()["posts"]) == 10
    assert response.json()["hasMore"] is False


@pytest.mark.asyncio
async def test_feed_clamps_paging_input(
    async_client: AsyncClient,
    db_session: AsyncSession,
    create_user,
):
    author = await create_user("author")
    await insert_posts(db_session, author, 12)

    default_page = await async_client.get("/api/v1/posts")
    tiny_page = await async_client.get("/api/v1/posts", params={"limit": 0, "offset": -5})

    assert len(default_page.json()["posts"]) == post_service.DEFAULT_PAGE_SIZE
    assert len(tiny_page.json()["posts"]) == 1
    assert tiny_page.headers["x-next-offset"] == "1"


@pytest.mark.asyncio
async def test_feed_filters_by_author(
    async_client: AsyncClient,
    db_session: AsyncSession,
    create_user,
):
    alice = await create_user("alice")
    bob = await create_user("bob")
    await insert_posts(db_session, alice, 2)
    await insert_posts(db_session, bob, 3)

    by_internal_id = await async_client.get("/api/v1/posts", params={"userId": bob.id})
    by_external_id = await async_client.get("/api/v1/posts", params={"userId": bob.external_id})
    unknown = await async_client.get("/api/v1/posts", params={"userId": "nobody"})

    assert {item["user_id"] for item in by_internal_id.json()["posts"]} == {bob.id}
    assert len(by_internal_id.json()["posts"]) == 3
    assert by_external_id.json() == by_internal_id.json()
    assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_delete_post_cascades_and_removes_image(
    async_client: AsyncClient,
    db_session: AsyncSession,
    create_user,
    auth_headers,
    object_store,
):
    author = await create_user("author")
    fan = await create_user("fan")
    (post,) = await insert_posts(db_session, author, 1)
    db_session.add(Like(post_id=post.id, user_id=fan.id))
    db_session.add(Comment(post_id=post.id, user_id=fan.id, content="nice"))
    await db_session.commit()

    response = await async_client.delete(f"/api/v1/posts/{post.id}", headers=auth_headers(author))

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert object_store.deleted == [post.image_key]

    likes = await db_session.execute(select(Like).where(Like.post_id == post.id))
    comments = await db_session.execute(select(Comment).where(Comment.post_id == post.id))
    assert likes.scalars().all() == []
    assert comments.scalars().all() == []

    follow_up = await async_client.get(f"/api/v1/posts/{post.id}")
    assert follow_up.status_code == 404


@pytest.mark.asyncio
async def test_delete_post_survives_image_cleanup_failure(
    async_client: AsyncClient,
    db_session: AsyncSession,
    create_user,
    auth_headers,
    object_store,
):
    author = await create_user("author")
    (post,) = await insert_posts(db_session, author, 1)
    object_store.fail_deletes = True

    response = await async_client.delete(f"/api/v1/posts/{post.id}", headers=auth_headers(author))

    assert response.status_code == 200
    follow_up = await async_client.get(f"/api/v1/posts/{post.id}")
    assert follow_up.status_code == 404


@pytest.mark.asyncio
async def test_delete_post_enforces_ownership(
    async_client: AsyncClient,
    db_session: AsyncSession,
    create_user,
    auth_headers,
    object_store,
):
    author = await create_user("author")
    intruder = await create_user("intruder")
    (post,) = await insert_posts(db_session, author, 1)

    forbidden = await async_client.delete(f"/api/v1/posts/{post.id}", headers=auth_headers(intruder))
    missing = await async_client.delete("/api/v1/posts/missing", headers=auth_headers(author))

    assert forbidden.status_code == 403
    assert missing.status_code == 404
    assert object_store.deleted == []

    still_there = await async_client.get(f"/api/v1/posts/{post.id}")
    assert still_there.status_code == 200


@pytest.mark.asyncio
async def test_double_delete_returns_not_found(
    async_client: AsyncClient,
    db_session: AsyncSession,
    create_user,
    auth_headers,
):
    author = await create_user("author")
    (post,) = await insert_posts(db_session, author, 1)
    headers = auth_headers(author)

    first = await async_client.delete(f"/api/v1/posts/{post.id}", headers=headers)
    second = await async_client.delete(f"/api/v1/posts/{post.id}", headers=headers)

    assert first.status_code == 200
    assert second.status_code == 404
