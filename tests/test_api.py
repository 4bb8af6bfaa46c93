"""End-to-end API flows through the FastAPI application."""
from __future__ import annotations

from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from forum.clients import set_text_client, set_uploader, set_webhook_notifier
from forum.main import app
from forum.services import LocalIdentityProvider, configure_runtime

ADMIN_EMAIL = "admin@aktiforum.com"


class StubUploader:
    def __init__(self) -> None:
        self.uploads: list[tuple[bytes, str | None]] = []

    async def upload(self, file_bytes: bytes, *, filename: str | None = None) -> str:
        self.uploads.append((file_bytes, filename))
        return f"https://i.ibb.co/stub/{filename or 'blob'}"


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[dict] = []

    def fire(self, message) -> None:
        self.messages.append(dict(message))


class StubTextClient:
    async def complete(self, prompt: str, system_instruction: str | None = None) -> str:
        return "Chess lover and weekend hiker."


@pytest.fixture
def uploader() -> StubUploader:
    return StubUploader()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(session_factory, store, uploader, notifier) -> Iterator[TestClient]:
    configure_runtime(store=store, identity=LocalIdentityProvider(session_factory))
    set_uploader(uploader)
    set_webhook_notifier(notifier)  # type: ignore[arg-type]
    set_text_client(StubTextClient())
    with TestClient(app) as test_client:
        yield test_client
    configure_runtime()
    set_uploader(None)
    set_text_client(None)
    set_webhook_notifier(None)


@pytest.fixture
def register(client) -> Callable[..., tuple[str, dict[str, str]]]:
    def _register(name: str, email: str | None = None) -> tuple[str, dict[str, str]]:
        response = client.post(
            "/auth/register",
            json={"email": email or f"{name}@aktiforum.com", "password": "secret123", "display_name": name.title()},
        )
        assert response.status_code == 201, response.text
        payload = response.json()
        return payload["user_id"], {"Authorization": f"Bearer {payload['access_token']}"}

    return _register


def test_register_login_and_me(client, register):
    uid, headers = register("alice")

    me = client.get("/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["uid"] == uid
    assert me.json()["role"] == "user"

    duplicate = client.post(
        "/auth/register",
        json={"email": "alice@aktiforum.com", "password": "secret123", "display_name": "Again"},
    )
    assert duplicate.status_code == 409

    bad_login = client.post("/auth/login", json={"email": "alice@aktiforum.com", "password": "nope"})
    assert bad_login.status_code == 401

    login = client.post("/auth/login", json={"email": "ALICE@aktiforum.com", "password": "secret123"})
    assert login.status_code == 200
    assert login.json()["user_id"] == uid

    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_blank_display_name_does_not_consume_the_email(client):
    blank = client.post(
        "/auth/register",
        json={"email": "dana@aktiforum.com", "password": "secret123", "display_name": "   "},
    )
    assert blank.status_code == 422

    retry = client.post(
        "/auth/register",
        json={"email": "dana@aktiforum.com", "password": "secret123", "display_name": "  Dana "},
    )
    assert retry.status_code == 201
    assert retry.json()["display_name"] == "Dana"


def test_failed_profile_write_removes_the_credentials(client, monkeypatch):
    from forum.services import auth_service
    from forum.sync.errors import MutationError

    real_create = auth_service.create_user_profile

    async def failing_create(store, **kwargs):
        raise MutationError("store offline", collection="users", doc_id=kwargs["uid"])

    payload = {"email": "erin@aktiforum.com", "password": "secret123", "display_name": "Erin"}
    monkeypatch.setattr(auth_service, "create_user_profile", failing_create)
    assert client.post("/auth/register", json=payload).status_code == 502
    assert client.post("/auth/login", json={"email": payload["email"], "password": "secret123"}).status_code == 401

    monkeypatch.setattr(auth_service, "create_user_profile", real_create)
    assert client.post("/auth/register", json=payload).status_code == 201
    assert client.post("/auth/login", json={"email": payload["email"], "password": "secret123"}).status_code == 200


def test_registration_sends_a_minimal_notice(client, register, notifier):
    register("alice")

    assert notifier.messages == [{"event": "registration", "displayName": "Alice", "role": "user"}]


def test_admin_email_registers_as_admin(client, register):
    _, headers = register("root", ADMIN_EMAIL)

    profile = client.get("/profiles/me", headers=headers).json()

    assert profile["role"] == "admin"
    assert profile["badge"] == "ADMIN"
    assert profile["is_pro"] is True


def test_profile_update_and_lookup(client, register):
    uid, headers = register("alice")
    _, other = register("bob")

    response = client.patch(
        "/profiles/me",
        headers=headers,
        json={"bio": "Chess and hiking", "socials": {"telegram": "@alice"}},
    )
    assert response.status_code == 200
    assert response.json()["bio"] == "Chess and hiking"

    viewed = client.get(f"/profiles/{uid}", headers=other).json()
    assert viewed["socials"]["telegram"] == "@alice"
    assert client.get("/profiles/ghost", headers=other).status_code == 404
    assert len(client.get("/profiles/", headers=other).json()["items"]) == 2


def test_posts_reactions_and_comments(client, register, uploader):
    _, author = register("alice")
    _, reader = register("bob")

    created = client.post(
        "/posts/",
        headers=author,
        data={"content": "Hello forum"},
        files={"file": ("sunset.png", b"png-bytes", "image/png")},
    )
    assert created.status_code == 201, created.text
    post = created.json()
    assert post["image_url"] == "https://i.ibb.co/stub/sunset.png"
    assert uploader.uploads == [(b"png-bytes", "sunset.png")]

    liked = client.post(f"/posts/{post['id']}/like", headers=reader, json={"click_id": "c-1"})
    assert liked.status_code == 200
    assert liked.json()["like_count"] == 1
    assert liked.json()["viewer_has_liked"] is True

    disliked = client.post(f"/posts/{post['id']}/dislike", headers=reader)
    assert (disliked.json()["like_count"], disliked.json()["dislike_count"]) == (0, 1)

    comment = client.post(f"/posts/{post['id']}/comments", headers=reader, json={"text": "Nice one"})
    assert comment.status_code == 201
    assert comment.json()["author_role"] == "user"

    engagement = client.get(f"/posts/{post['id']}/engagement").json()
    assert engagement["comment_count"] == 1
    comments = client.get(f"/posts/{post['id']}/comments").json()["items"]
    assert [item["text"] for item in comments] == ["Nice one"]

    assert client.post("/posts/ghost/comments", headers=reader, json={"text": "hi"}).status_code == 404
    assert client.post("/posts/ghost/like", headers=reader).status_code == 404


def test_confirmed_reactions_leave_no_pending_intents(client, register):
    from forum.services import get_registry

    uid, headers = register("alice")
    post_ids = [client.post("/posts/", headers=headers, data={"content": f"post {i}"}).json()["id"] for i in range(5)]

    for post_id in post_ids:
        assert client.post(f"/posts/{post_id}/like", headers=headers).json()["viewer_has_liked"] is True
    engine = get_registry().get(uid).engine

    assert engine.pending_intents == 0
    assert engine.held_locks == 0
    unliked = client.post(f"/posts/{post_ids[0]}/like", headers=headers).json()
    assert (unliked["like_count"], unliked["viewer_has_liked"]) == (0, False)


def test_empty_post_is_rejected(client, register):
    _, headers = register("alice")

    assert client.post("/posts/", headers=headers, data={"content": "   "}).status_code == 400


def test_feed_places_ads_for_regular_members_only(client, register):
    _, member = register("alice")
    _, admin = register("root", ADMIN_EMAIL)
    for index in range(4):
        assert client.post("/posts/", headers=member, data={"content": f"post {index}"}).status_code == 201

    member_feed = client.get("/posts/", headers=member).json()
    admin_feed = client.get("/posts/", headers=admin).json()

    assert [entry["kind"] for entry in member_feed["items"]] == ["post", "post", "post", "ad", "post"]
    assert member_feed["page_count"] == 1
    assert [entry["kind"] for entry in admin_feed["items"]] == ["post"] * 4


def test_delete_post_requires_author_or_admin(client, register):
    _, author = register("alice")
    _, stranger = register("mallory")
    post_id = client.post("/posts/", headers=author, data={"content": "mine"}).json()["id"]

    assert client.delete(f"/posts/{post_id}", headers=stranger).status_code == 403
    assert client.delete(f"/posts/{post_id}", headers=author).status_code == 204
    assert client.get("/posts/").json()["items"] == []


def test_lobby_and_private_threads(client, register):
    alice_id, alice = register("alice")
    bob_id, bob = register("bob")
    _, mallory = register("mallory")

    assert client.post("/messages/lobby", headers=alice, json={"text": "hi all"}).status_code == 201
    chat_id = client.post(f"/messages/direct/{bob_id}", headers=alice).json()["chat_id"]
    sent = client.post(f"/messages/threads/{chat_id}", headers=alice, json={"text": "hi bob"})
    assert sent.status_code == 201
    assert sent.json()["chat_id"] == chat_id

    lobby = client.get("/messages/lobby", headers=bob).json()["items"]
    assert [message["text"] for message in lobby] == ["hi all"]
    thread = client.get(f"/messages/threads/{chat_id}", headers=bob).json()["items"]
    assert [message["text"] for message in thread] == ["hi bob"]

    inbox = client.get("/messages/inbox", headers=bob).json()["items"]
    assert [(item["partner_id"], item["last_message"]) for item in inbox] == [(alice_id, "hi bob")]

    assert client.get(f"/messages/threads/{chat_id}", headers=mallory).status_code == 403
    assert client.post(f"/messages/threads/{chat_id}", headers=mallory, json={"text": "x"}).status_code == 403
    assert client.post("/messages/direct/ghost", headers=alice).status_code == 404


def test_upgrade_request_and_admin_review(client, register):
    _, member = register("alice")
    _, admin = register("root", ADMIN_EMAIL)

    submitted = client.post(
        "/transactions/",
        headers=member,
        data={"tx_id": "TX-42"},
        files={"file": ("receipt.jpg", b"jpg", "image/jpeg")},
    )
    assert submitted.status_code == 201
    transaction = submitted.json()
    assert transaction["status"] == "pending"
    assert transaction["image_url"].endswith("receipt.jpg")

    assert client.post("/transactions/", headers=member, data={"tx_id": "TX-43"}).status_code == 409
    assert client.get("/transactions/pending", headers=member).status_code == 403
    assert client.post(f"/transactions/{transaction['id']}/review", headers=member, json={"approve": True}).status_code == 403

    pending = client.get("/transactions/pending", headers=admin).json()["items"]
    assert [item["tx_id"] for item in pending] == ["TX-42"]

    reviewed = client.post(f"/transactions/{transaction['id']}/review", headers=admin, json={"approve": True})
    assert reviewed.json()["status"] == "approved"
    assert client.get("/auth/me", headers=member).json()["role"] == "pro"
    assert client.get("/transactions/mine", headers=member).json()["items"][0]["status"] == "approved"


def test_maintenance_mode_blocks_members_but_not_admins(client, register):
    _, member = register("alice")
    _, admin = register("root", ADMIN_EMAIL)

    assert client.put("/admin/maintenance", headers=member, json={"enabled": True}).status_code == 403
    assert client.put("/admin/maintenance", headers=admin, json={"enabled": True}).json()["maintenance_mode"] is True
    assert client.get("/settings/site").json() == {"maintenance_mode": True}

    assert client.post("/posts/", headers=member, data={"content": "blocked"}).status_code == 503
    assert client.post("/posts/", headers=admin, data={"content": "still open"}).status_code == 201

    client.put("/admin/maintenance", headers=admin, json={"enabled": False})
    assert client.post("/posts/", headers=member, data={"content": "back"}).status_code == 201


def test_admin_stats_and_role_changes(client, register):
    member_id, member = register("alice")
    admin_id, admin = register("root", ADMIN_EMAIL)
    client.post("/posts/", headers=member, data={"content": "hello"})

    assert client.get("/admin/stats", headers=member).status_code == 403
    stats = client.get("/admin/stats", headers=admin).json()
    assert stats == {"total_users": 2, "total_posts": 1, "total_comments": 0}

    promoted = client.put(f"/admin/members/{member_id}/role", headers=admin, json={"role": "premium"})
    assert promoted.json()["badge"] == "PREMIUM"
    assert client.put(f"/admin/members/{admin_id}/role", headers=admin, json={"role": "user"}).status_code == 403
    assert client.put(f"/admin/members/{member_id}/role", headers=admin, json={"role": "owner"}).status_code == 400


def test_ai_endpoints_use_the_text_client(client, register):
    _, headers = register("alice")

    bio = client.post("/ai/bio", headers=headers, json={"interests": "chess, hiking"})
    support = client.post("/ai/support", headers=headers, json={"query": "How do I upgrade?"})

    assert bio.json() == {"bio": "Chess lover and weekend hiker."}
    assert support.json() == {"reply": "Chess lover and weekend hiker."}


def test_health_reports_live_queries(client):
    assert client.get("/health").json() == {"status": "ok", "live_queries": 0}
    assert client.get("/api").json()["version"]


def test_feed_socket_streams_snapshots(client, register):
    _, headers = register("alice")
    token = headers["Authorization"].split()[1]

    with client.websocket_connect(f"/ws/feed?token={token}") as websocket:
        initial = websocket.receive_json()
        assert initial["type"] == "snapshot"
        assert initial["stream"] == "feed"
        assert initial["items"] == []

        client.post("/posts/", headers=headers, data={"content": "live!"})
        update = websocket.receive_json()
        assert [entry["post"]["content"] for entry in update["items"]] == ["live!"]

        websocket.send_text("ping")
        assert websocket.receive_json() == {"type": "pong"}


def test_sockets_reject_missing_tokens_and_outsiders(client, register):
    _, alice = register("alice")
    _, mallory = register("mallory")
    mallory_token = mallory["Authorization"].split()[1]

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws/lobby") as websocket:
            websocket.receive_json()

    with client.websocket_connect(f"/ws/threads/dm_alice0_bob0?token={mallory_token}") as websocket:
        message = websocket.receive_json()
        assert message["type"] == "error"
        assert message["code"] == "permission-denied"


def test_settings_socket_follows_maintenance_mode(client, register):
    _, admin = register("root", ADMIN_EMAIL)
    token = admin["Authorization"].split()[1]

    with client.websocket_connect(f"/ws/settings?token={token}") as websocket:
        assert websocket.receive_json()["items"] == [{"maintenance_mode": False}]

        client.put("/admin/maintenance", headers=admin, json={"enabled": True})

        assert websocket.receive_json()["items"] == [{"maintenance_mode": True}]


def test_pending_transactions_socket_is_admin_only(client, register):
    _, member = register("alice")
    _, admin = register("root", ADMIN_EMAIL)
    member_token = member["Authorization"].split()[1]
    admin_token = admin["Authorization"].split()[1]

    with client.websocket_connect(f"/ws/transactions/pending?token={member_token}") as websocket:
        assert websocket.receive_json()["code"] == "permission-denied"

    with client.websocket_connect(f"/ws/transactions/pending?token={admin_token}") as websocket:
        assert websocket.receive_json()["items"] == []

        client.post("/transactions/", headers=member, data={"tx_id": "TX-7"})

        update = websocket.receive_json()
        assert [item["tx_id"] for item in update["items"]] == ["TX-7"]


def test_video_posts_and_type_filter(client, register):
    member_id, member = register("alice")
    _, admin = register("root", ADMIN_EMAIL)
    video = {"title": "Launch clip", "video_url": "https://www.youtube.com/watch?v=abc123"}

    assert client.post("/posts/videos", headers=member, json=video).status_code == 403
    client.put(f"/admin/members/{member_id}/role", headers=admin, json={"role": "premium"})
    assert client.post("/posts/videos", headers=member, json={**video, "video_url": "not a url"}).status_code == 400

    created = client.post("/posts/videos", headers=member, json=video)
    assert created.status_code == 201
    body = created.json()
    assert (body["post_type"], body["title"], body["embed_url"]) == (
        "video",
        "Launch clip",
        "https://www.youtube.com/embed/abc123",
    )
    client.post("/posts/", headers=member, data={"content": "plain"})

    videos = client.get("/posts/", params={"type": "video"}, headers=admin).json()["items"]
    texts = client.get("/posts/", params={"type": "text"}, headers=admin).json()["items"]
    assert [entry["post"]["title"] for entry in videos if entry["kind"] == "post"] == ["Launch clip"]
    assert [entry["post"]["content"] for entry in texts if entry["kind"] == "post"] == ["plain"]
    assert client.get("/posts/", params={"type": "audio"}).status_code == 422


def test_support_conversation_round_trip(client, register):
    member_id, member = register("alice")
    _, admin = register("root", ADMIN_EMAIL)
    _, outsider = register("mallory")

    subjects = client.get("/support/subjects").json()
    assert subjects["default"] in subjects["subjects"]

    sent = client.post("/support/messages", headers=member, json={"message": "Where is my badge?"})
    assert sent.status_code == 201
    assert sent.json()["conversation_id"] == member_id
    assert client.post("/support/messages", headers=member, json={"message": "x", "subject": "Nope"}).status_code == 400

    assert client.get("/support/inbox", headers=member).status_code == 403
    assert client.get(f"/support/conversations/{member_id}", headers=outsider).status_code == 403
    assert (
        client.post(f"/support/conversations/{member_id}/replies", headers=outsider, json={"message": "hi"}).status_code
        == 403
    )

    reply = client.post(f"/support/conversations/{member_id}/replies", headers=admin, json={"message": "On its way"})
    assert reply.status_code == 201
    assert reply.json()["is_admin_reply"] is True
    inbox = client.get("/support/inbox", headers=admin).json()["items"]
    assert sorted(item["message"] for item in inbox) == ["On its way", "Where is my badge?"]

    first_read = client.get("/support/messages", headers=member).json()["items"]
    assert {item["message"]: item["read"] for item in first_read} == {"Where is my badge?": False, "On its way": False}
    second_read = client.get("/support/messages", headers=member).json()["items"]
    assert {item["message"]: item["read"] for item in second_read} == {"Where is my badge?": False, "On its way": True}


def test_verification_request_and_review(client, register, uploader):
    _, member = register("alice")
    _, admin = register("root", ADMIN_EMAIL)

    submitted = client.post("/verification/", headers=member, files={"file": ("id.jpg", b"jpg", "image/jpeg")})
    assert submitted.status_code == 201
    request = submitted.json()
    assert request["status"] == "pending"
    assert uploader.uploads[-1] == (b"jpg", "id.jpg")
    assert client.get("/auth/me", headers=member).json()["verification_status"] == "pending"

    again = client.post("/verification/", headers=member, files={"file": ("id2.jpg", b"jpg", "image/jpeg")})
    assert again.status_code == 409
    assert client.get("/verification/pending", headers=member).status_code == 403
    assert client.post(f"/verification/{request['id']}/review", headers=member, json={"approve": True}).status_code == 403

    pending = client.get("/verification/pending", headers=admin).json()["items"]
    assert [item["id"] for item in pending] == [request["id"]]

    reviewed = client.post(f"/verification/{request['id']}/review", headers=admin, json={"approve": True})
    assert reviewed.json()["status"] == "approved"
    me = client.get("/auth/me", headers=member).json()
    assert (me["is_verified"], me["verification_status"]) == (True, "verified")
    assert client.post(f"/verification/{request['id']}/review", headers=admin, json={"approve": False}).status_code == 409


def test_support_and_verification_sockets(client, register):
    member_id, member = register("alice")
    _, admin = register("root", ADMIN_EMAIL)
    member_token = member["Authorization"].split()[1]
    admin_token = admin["Authorization"].split()[1]

    with client.websocket_connect(f"/ws/verifications/pending?token={member_token}") as websocket:
        assert websocket.receive_json()["code"] == "permission-denied"
    with client.websocket_connect(f"/ws/support/inbox?token={member_token}") as websocket:
        assert websocket.receive_json()["code"] == "permission-denied"

    with client.websocket_connect(f"/ws/verifications/pending?token={admin_token}") as websocket:
        assert websocket.receive_json()["items"] == []
        client.post("/verification/", headers=member, files={"file": ("id.jpg", b"jpg", "image/jpeg")})
        assert [item["user_id"] for item in websocket.receive_json()["items"]] == [member_id]

    with client.websocket_connect(f"/ws/support?token={member_token}") as websocket:
        assert websocket.receive_json()["items"] == []
        client.post("/support/messages", headers=member, json={"message": "hello"})
        assert [item["message"] for item in websocket.receive_json()["items"]] == ["hello"]
