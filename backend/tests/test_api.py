"""End-to-end tests for the forum and moderation HTTP API."""

from datetime import datetime, timedelta

import jwt
import pytest

from conftest import auth, make_post
from spotterhub.core.config import settings
from spotterhub.models.forum import ForumCategory

API = f"{settings.api_v1_prefix}/forum"


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


# ==================== Permissions ====================


async def test_permissions_for_moderator(client, moderator):
    r = await client.get(f"{API}/permissions", headers=auth(moderator))

    assert r.status_code == 200
    assert r.json() == {
        "can_moderate": True,
        "can_pin": True,
        "can_lock": True,
        "can_delete": True,
        "can_edit_any_post": False,
        "can_manage_users": False,
    }


async def test_permissions_for_anonymous(client):
    r = await client.get(f"{API}/permissions")

    assert r.status_code == 200
    assert not any(r.json().values())


async def test_invalid_token_rejected(client):
    r = await client.post(
        f"{API}/posts",
        json={"title": "Hi", "content": "..."},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert r.status_code == 401


@pytest.mark.parametrize("token", ["not-a-jwt", "expired"])
async def test_permissions_with_bad_token_are_all_false(client, token):
    if token == "expired":
        token = jwt.encode(
            {
                "sub": "M",
                "roles": ["moderator"],
                "exp": datetime.utcnow() - timedelta(hours=1),
            },
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )

    r = await client.get(
        f"{API}/permissions", headers={"Authorization": f"Bearer {token}"}
    )

    assert r.status_code == 200
    assert not any(r.json().values())


# ==================== Scenarios ====================


async def test_moderator_pins_post_and_history_shows_it(client, seeded, moderator):
    r = await client.post(
        f"{API}/posts/P123/pin",
        json={"pinned": True, "reason": "community favorite"},
        headers=auth(moderator),
    )
    assert r.status_code == 200
    assert r.json()["is_pinned"] is True
    assert r.json()["comment_count"] == 2

    r = await client.get(
        f"{API}/moderation/history", params={"limit": 1}, headers=auth(moderator)
    )
    assert r.status_code == 200
    [entry] = r.json()["items"]
    assert entry["actor_id"] == "M"
    assert entry["action_type"] == "pin"
    assert entry["target_id"] == "P123"
    assert entry["reason"] == "community favorite"


async def test_member_cannot_pin(client, seeded, member, moderator):
    r = await client.post(
        f"{API}/posts/P123/pin", json={"pinned": True}, headers=auth(member)
    )
    assert r.status_code == 403

    r = await client.get(f"{API}/posts/P123")
    assert r.json()["is_pinned"] is False

    r = await client.get(f"{API}/moderation/history", headers=auth(moderator))
    assert r.json()["items"] == []


async def test_report_lifecycle(client, member, moderator):
    r = await client.post(
        f"{API}/reports",
        json={
            "target_type": "comment",
            "target_id": "C77",
            "reason": "spam",
            "description": "Selling fake lenses",
        },
        headers=auth(member),
    )
    assert r.status_code == 201
    report = r.json()
    assert report["status"] == "pending"

    r = await client.get(f"{API}/reports", headers=auth(moderator))
    assert [item["id"] for item in r.json()["items"]] == [report["id"]]

    r = await client.post(
        f"{API}/reports/{report['id']}/resolve",
        json={"status": "dismissed", "resolution_note": "Legit seller"},
        headers=auth(moderator),
    )
    assert r.status_code == 200
    assert r.json()["status"] == "dismissed"
    assert r.json()["reviewed_by"] == "M"

    r = await client.get(f"{API}/reports", headers=auth(moderator))
    assert r.json()["items"] == []

    r = await client.post(
        f"{API}/reports/{report['id']}/resolve",
        json={"status": "resolved", "resolution_note": "second try"},
        headers=auth(moderator),
    )
    assert r.status_code == 409


async def test_author_deletes_own_post(client, seeded, author):
    assert not any(author.roles)

    r = await client.request(
        "DELETE",
        f"{API}/posts/P5",
        json={"reason": "duplicate thread"},
        headers=auth(author),
    )
    assert r.status_code == 200
    assert r.json()["deleted"] is True

    r = await client.get(f"{API}/posts/P5")
    assert r.status_code == 404

    r = await client.get(f"{API}/posts")
    assert "P5" not in [p["id"] for p in r.json()["items"]]


# ==================== Content flows ====================


async def test_locked_post_blocks_comments_until_unlocked(client, seeded, moderator, member):
    r = await client.post(
        f"{API}/posts/P123/lock", json={"locked": True}, headers=auth(moderator)
    )
    assert r.status_code == 200
    assert r.json()["is_locked"] is True

    for actor in (member, moderator):
        r = await client.post(
            f"{API}/posts/P123/comments",
            json={"content": "Hello?"},
            headers=auth(actor),
        )
        assert r.status_code == 423

    await client.post(
        f"{API}/posts/P123/lock", json={"locked": False}, headers=auth(moderator)
    )
    r = await client.post(
        f"{API}/posts/P123/comments", json={"content": "Back open"}, headers=auth(member)
    )
    assert r.status_code == 201


async def test_delete_comment_twice(client, seeded, moderator):
    r = await client.request(
        "DELETE", f"{API}/comments/C1", json={"reason": "rude"}, headers=auth(moderator)
    )
    assert r.status_code == 200

    r = await client.request(
        "DELETE", f"{API}/comments/C1", json={"reason": "rude"}, headers=auth(moderator)
    )
    assert r.status_code == 404

    r = await client.get(f"{API}/posts/P123")
    assert r.json()["comment_count"] == 1


async def test_delete_requires_reason(client, seeded, moderator):
    r = await client.request(
        "DELETE", f"{API}/posts/P123", json={"reason": ""}, headers=auth(moderator)
    )
    assert r.status_code == 400

    r = await client.get(f"{API}/posts/P123")
    assert r.status_code == 200


async def test_create_post_and_comment(client, member):
    r = await client.post(
        f"{API}/posts",
        json={"title": "Best spot at LHR 27L?", "content": "Asking for a friend"},
        headers=auth(member),
    )
    assert r.status_code == 201
    post = r.json()
    assert post["author"] == {"id": "U", "name": "Uma User"}
    assert post["comment_count"] == 0

    r = await client.post(
        f"{API}/posts/{post['id']}/comments",
        json={"content": "Myrtle Avenue"},
        headers=auth(member),
    )
    assert r.status_code == 201

    r = await client.get(f"{API}/posts/{post['id']}/comments")
    assert [c["content"] for c in r.json()["items"]] == ["Myrtle Avenue"]

    r = await client.get(f"{API}/posts/{post['id']}")
    assert r.json()["views"] == 1
    assert r.json()["comment_count"] == 1


async def test_anonymous_cannot_post(client):
    r = await client.post(f"{API}/posts", json={"title": "Hi", "content": "..."})
    assert r.status_code == 401


async def test_report_requires_login(client):
    r = await client.post(
        f"{API}/reports",
        json={"target_type": "post", "target_id": "P1", "reason": "spam"},
    )
    assert r.status_code == 401


async def test_report_with_bad_target_type(client, member):
    r = await client.post(
        f"{API}/reports",
        json={"target_type": "photo", "target_id": "P1", "reason": "spam"},
        headers=auth(member),
    )
    assert r.status_code == 422


async def test_stats(client, seeded, moderator, member):
    await client.post(
        f"{API}/reports",
        json={"target_type": "post", "target_id": "P123", "reason": "spam"},
        headers=auth(member),
    )
    await client.post(
        f"{API}/posts/P123/pin", json={"pinned": True}, headers=auth(moderator)
    )

    r = await client.get(f"{API}/moderation/stats", headers=auth(moderator))
    assert r.status_code == 200
    assert r.json() == {
        "pending_count": 1,
        "actions_today": 1,
        "total_posts": 2,
        "total_comments": 2,
    }


@pytest.mark.parametrize(
    "path", ["/moderation/stats", "/moderation/history", "/reports"]
)
async def test_moderator_only_reads(client, member, path):
    r = await client.get(f"{API}{path}", headers=auth(member))
    assert r.status_code == 403


@pytest.mark.parametrize("path", ["/posts/P123", "/comments/C1"])
async def test_delete_without_body_needs_reason(client, seeded, moderator, path):
    r = await client.delete(f"{API}{path}", headers=auth(moderator))

    assert r.status_code == 400
    assert "reason" in r.json()["detail"]


async def test_history_filtered_by_target_type(client, seeded, moderator):
    await client.post(
        f"{API}/posts/P123/pin", json={"pinned": True}, headers=auth(moderator)
    )
    await client.request(
        "DELETE", f"{API}/comments/C1", json={"reason": "rude"}, headers=auth(moderator)
    )

    r = await client.get(
        f"{API}/moderation/history",
        params={"target_type": "comment"},
        headers=auth(moderator),
    )

    assert [e["target_type"] for e in r.json()["items"]] == ["comment"]


# ==================== Listing ====================


async def test_post_listing_totals_and_search(client, seeded):
    r = await client.get(f"{API}/posts", params={"limit": 1})
    body = r.json()
    assert body["total"] == 2
    assert body["has_more"] is True
    assert len(body["items"]) == 1

    r = await client.get(f"{API}/posts", params={"limit": 1, "offset": 1})
    assert r.json()["has_more"] is False

    r = await client.get(f"{API}/posts", params={"search": "a380"})
    assert [p["id"] for p in r.json()["items"]] == ["P5"]
    assert r.json()["total"] == 1


async def test_post_listing_sorted_by_comments(client, seeded):
    r = await client.get(
        f"{API}/posts", params={"sort_by": "comments", "sort_order": "asc"}
    )

    assert [p["id"] for p in r.json()["items"]] == ["P5", "P123"]
    assert [p["comment_count"] for p in r.json()["items"]] == [0, 2]


async def test_post_listing_rejects_unknown_sort(client):
    r = await client.get(f"{API}/posts", params={"sort_by": "likes"})
    assert r.status_code == 422


async def test_category_by_slug(client, session_factory, author):
    async with session_factory() as session:
        category = ForumCategory(name="Airshows", slug="airshows")
        session.add(category)
        await session.flush()
        await make_post(session, "P1", author, category_id=category.id)
        await session.commit()

    r = await client.get(f"{API}/categories/airshows")
    assert r.status_code == 200
    assert r.json()["name"] == "Airshows"
    assert r.json()["post_count"] == 1

    r = await client.get(f"{API}/categories/helicopters")
    assert r.status_code == 404


async def test_forum_stats(client, seeded):
    await client.get(f"{API}/posts/P5")

    r = await client.get(f"{API}/stats")

    assert r.status_code == 200
    body = r.json()
    assert body["total_posts"] == 2
    assert body["total_comments"] == 2
    assert body["popular_posts"][0]["id"] == "P5"
    assert {p["id"] for p in body["recent_posts"]} == {"P123", "P5"}
