import asyncio
import json

import pytest
from conftest import auth_headers, make_token
from fastapi import WebSocketDisconnect

from chautari import realtime
from chautari.database import SessionLocal
from chautari.domain.messaging import router as messaging_router
from chautari.domain.messaging.service import preview
from chautari.models import Conversation, Message, Notification


@pytest.fixture
def published(monkeypatch):
    calls = []

    def fake_publish(conversation_id, payload):
        calls.append((conversation_id, payload))
        return True

    monkeypatch.setattr(realtime, "publish_message", fake_publish)
    return calls


def get_conversation(client, user, request_id):
    resp = client.get(f"/switch-requests/{request_id}/conversation", headers=auth_headers(user))
    assert resp.status_code == 200, resp.text
    return resp.json()


class TestConversation:
    def test_conversation_exists_from_submission(self, client, patient, agency_staff, switch_request):
        patient_view = get_conversation(client, patient, switch_request["id"])
        agency_view = get_conversation(client, agency_staff, switch_request["id"])

        assert patient_view["id"] == agency_view["id"]
        assert patient_view["agency_name"] == "Sunrise Home Care"
        assert patient_view["patient_name"] == "Maya Gurung"
        assert patient_view["request_status"] == "submitted"
        assert patient_view["messages"] == []

    def test_missing_conversation_is_created(self, client, db, patient, switch_request):
        db.query(Conversation).delete()
        db.commit()

        conversation = get_conversation(client, patient, switch_request["id"])
        assert conversation["request_id"] == switch_request["id"]
        assert db.query(Conversation).count() == 1

    def test_outsider_is_forbidden(self, client, other_patient, outside_staff, switch_request):
        for user in (other_patient, outside_staff):
            resp = client.get(f"/switch-requests/{switch_request['id']}/conversation", headers=auth_headers(user))
            assert resp.status_code == 403

    def test_unknown_request_is_404(self, client, patient):
        assert client.get("/switch-requests/missing/conversation", headers=auth_headers(patient)).status_code == 404


class TestSendMessage:
    def test_patient_message_notifies_agency_and_publishes(
        self, client, db, published, patient, agency_staff, switch_request
    ):
        conversation = get_conversation(client, patient, switch_request["id"])

        resp = client.post(
            f"/conversations/{conversation['id']}/messages",
            json={"body": "  When can the nurse visit?  "},
            headers=auth_headers(patient),
        )

        assert resp.status_code == 201
        message = resp.json()
        assert message["body"] == "When can the nurse visit?"
        assert message["sender_role"] == "patient"
        assert message["is_read"] is False

        assert published == [(conversation["id"], message)]

        stored = db.query(Conversation).filter(Conversation.id == conversation["id"]).one()
        assert stored.agency_unread == 1
        assert stored.patient_unread == 0
        assert stored.last_message_at is not None

        note = db.query(Notification).filter(Notification.type == "new_message").one()
        assert note.user_id == agency_staff.id
        assert note.title == "New message from Maya Gurung"

    def test_agency_message_notifies_patient(self, client, db, published, patient, agency_staff, switch_request):
        conversation = get_conversation(client, agency_staff, switch_request["id"])

        resp = client.post(
            f"/conversations/{conversation['id']}/messages",
            json={"body": "We can start Monday."},
            headers=auth_headers(agency_staff),
        )

        assert resp.json()["sender_role"] == "agency_staff"
        note = db.query(Notification).filter(Notification.type == "new_message").one()
        assert note.user_id == patient.id
        assert note.body == "We can start Monday."

    def test_markup_is_escaped(self, client, published, patient, switch_request):
        conversation = get_conversation(client, patient, switch_request["id"])
        resp = client.post(
            f"/conversations/{conversation['id']}/messages",
            json={"body": "<b>hi</b>"},
            headers=auth_headers(patient),
        )
        assert resp.json()["body"] == "&lt;b&gt;hi&lt;/b&gt;"

    def test_notification_matches_stored_body(self, client, db, published, patient, agency_staff, switch_request):
        conversation = get_conversation(client, agency_staff, switch_request["id"])
        resp = client.post(
            f"/conversations/{conversation['id']}/messages",
            json={"body": "Tom & Jerry's visit"},
            headers=auth_headers(agency_staff),
        )

        stored = db.query(Message).filter(Message.id == resp.json()["id"]).one()
        note = db.query(Notification).filter(Notification.type == "new_message").one()
        assert note.body == stored.body == resp.json()["body"]

    @pytest.mark.parametrize("body", ["", "   ", "x" * 4001])
    def test_invalid_bodies(self, client, published, patient, switch_request, body):
        conversation = get_conversation(client, patient, switch_request["id"])
        resp = client.post(
            f"/conversations/{conversation['id']}/messages", json={"body": body}, headers=auth_headers(patient)
        )
        assert resp.status_code == 422

    def test_outsider_cannot_send(self, client, published, patient, other_patient, switch_request):
        conversation = get_conversation(client, patient, switch_request["id"])
        resp = client.post(
            f"/conversations/{conversation['id']}/messages", json={"body": "hello"}, headers=auth_headers(other_patient)
        )
        assert resp.status_code == 403
        assert published == []

    def test_unknown_conversation_is_404(self, client, published, patient):
        resp = client.post("/conversations/missing/messages", json={"body": "hello"}, headers=auth_headers(patient))
        assert resp.status_code == 404

    def test_publish_failure_does_not_fail_send(self, client, patient, switch_request):
        # Redis is disabled in tests, so the real publisher logs and returns False
        conversation = get_conversation(client, patient, switch_request["id"])
        resp = client.post(
            f"/conversations/{conversation['id']}/messages", json={"body": "hello"}, headers=auth_headers(patient)
        )
        assert resp.status_code == 201

    def test_messages_are_rate_limited(self, client, published, patient, switch_request):
        conversation = get_conversation(client, patient, switch_request["id"])
        url = f"/conversations/{conversation['id']}/messages"
        statuses = [
            client.post(url, json={"body": f"message {i}"}, headers=auth_headers(patient)).status_code
            for i in range(31)
        ]
        assert statuses[:30] == [201] * 30
        assert statuses[30] == 429


class TestReadState:
    def test_mark_read_clears_counter(self, client, db, published, patient, agency_staff, switch_request):
        conversation = get_conversation(client, patient, switch_request["id"])
        url = f"/conversations/{conversation['id']}/messages"
        client.post(url, json={"body": "first"}, headers=auth_headers(agency_staff))
        client.post(url, json={"body": "second"}, headers=auth_headers(agency_staff))
        client.post(url, json={"body": "reply"}, headers=auth_headers(patient))

        resp = client.post(f"/conversations/{conversation['id']}/read", headers=auth_headers(patient))

        assert resp.json() == {"success": True, "marked_read": 2}
        stored = db.query(Conversation).filter(Conversation.id == conversation["id"]).one()
        db.refresh(stored)
        assert stored.patient_unread == 0
        assert stored.agency_unread == 1
        unread_own = db.query(Message).filter(Message.sender_role == "patient", Message.is_read.is_(False)).count()
        assert unread_own == 1


class TestInboxes:
    def test_patient_and_agency_lists(self, client, published, patient, agency_staff, switch_request):
        conversation = get_conversation(client, patient, switch_request["id"])
        client.post(
            f"/conversations/{conversation['id']}/messages",
            json={"body": "a" * 120},
            headers=auth_headers(patient),
        )

        patient_list = client.get("/conversations", headers=auth_headers(patient)).json()
        agency_list = client.get("/agency/conversations", headers=auth_headers(agency_staff)).json()

        assert [c["id"] for c in patient_list] == [conversation["id"]]
        assert [c["id"] for c in agency_list] == [conversation["id"]]
        assert agency_list[0]["patient_name"] == "Maya Gurung"
        assert agency_list[0]["agency_unread"] == 1
        assert patient_list[0]["last_message_preview"] == "a" * 80 + "…"

    def test_preview_helper(self):
        assert preview(None, 10) is None
        assert preview("short", 10) == "short"
        assert preview("abcdefghijk", 10) == "abcdefghij…"


class FakePubSub:
    """Async pub/sub double that hands out queued payloads once subscribed"""

    def __init__(self, payloads, on_subscribe=None):
        self.payloads = list(payloads)
        self.on_subscribe = on_subscribe
        self.channels = []

    async def subscribe(self, channel):
        self.channels.append(channel)
        if self.on_subscribe:
            self.on_subscribe()

    async def get_message(self, ignore_subscribe_messages=False, timeout=None):
        if self.payloads:
            return {"type": "message", "channel": self.channels[-1], "data": self.payloads.pop(0)}
        await asyncio.sleep(0.01)
        return None

    async def unsubscribe(self, channel):
        pass

    async def aclose(self):
        pass


class FakeAsyncRedis:
    def __init__(self, pubsub):
        self._pubsub = pubsub

    def pubsub(self):
        return self._pubsub

    async def aclose(self):
        pass


def refusal_code(client, url):
    with client.websocket_connect(url) as ws:
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_text()
    return exc.value.code


class TestWebsocket:
    def test_invalid_token_is_closed_4401_after_accept(self, client, patient, switch_request):
        conversation = get_conversation(client, patient, switch_request["id"])
        assert refusal_code(client, f"/conversations/{conversation['id']}/ws?token=garbage") == 4401

    def test_non_participant_is_closed_4403(self, client, patient, other_patient, switch_request):
        conversation = get_conversation(client, patient, switch_request["id"])
        token = make_token(other_patient.id, other_patient.email)
        assert refusal_code(client, f"/conversations/{conversation['id']}/ws?token={token}") == 4403

    def test_unknown_conversation_is_closed_4403(self, client, patient):
        token = make_token(patient.id, patient.email)
        assert refusal_code(client, f"/conversations/missing/ws?token={token}") == 4403

    def test_published_message_is_relayed(self, client, monkeypatch, patient, switch_request):
        conversation = get_conversation(client, patient, switch_request["id"])
        payload = {"id": "m1", "conversation_id": conversation["id"], "body": "Nurse arrives at 9"}

        sessions = []

        def tracked_session():
            session = SessionLocal()
            state = {"closed": False}
            original_close = session.close

            def close():
                state["closed"] = True
                original_close()

            session.close = close
            sessions.append(state)
            return session

        closed_at_subscribe = []
        pubsub = FakePubSub(
            [json.dumps(payload)],
            on_subscribe=lambda: closed_at_subscribe.append(all(s["closed"] for s in sessions)),
        )
        monkeypatch.setattr(messaging_router, "SessionLocal", tracked_session)
        monkeypatch.setattr(realtime, "get_async_redis", lambda: FakeAsyncRedis(pubsub))

        token = make_token(patient.id, patient.email)
        with client.websocket_connect(f"/conversations/{conversation['id']}/ws?token={token}") as ws:
            assert json.loads(ws.receive_text()) == payload

        assert pubsub.channels == [f"conversation:{conversation['id']}"]
        assert sessions
        assert closed_at_subscribe == [True]
