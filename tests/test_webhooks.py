from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time

from config.settings import Settings

WEBHOOK_SECRET = "whsec_" + base64.b64encode(b"super-secret-signing-key").decode("ascii")


class RecordingManager:
    def __init__(self) -> None:
        self.incoming: list[str] = []

    def active_call_ids(self) -> list[str]:
        return []

    async def handle_incoming_call(self, call_id: str) -> None:
        self.incoming.append(call_id)


def _override(app, *, secret: str | None = None) -> RecordingManager:
    import api.dependencies as deps
    from config.settings import get_settings

    manager = RecordingManager()
    app.dependency_overrides[deps.get_session_manager] = lambda: manager
    app.dependency_overrides[get_settings] = lambda: Settings(
        openai_api_key="sk-test",
        openai_webhook_secret=secret,
        _env_file=None,
    )
    return manager


def _incoming_event(call_id: str = "rtc_abc") -> bytes:
    return json.dumps(
        {
            "object": "event",
            "id": "evt_1",
            "type": "realtime.call.incoming",
            "created_at": 1750000000,
            "data": {"call_id": call_id, "sip_headers": [{"name": "From", "value": "sip:+4144@example.com"}]},
        }
    ).encode("utf-8")


def _signed_headers(body: bytes, secret: str) -> dict[str, str]:
    msg_id = "msg_1"
    timestamp = str(int(time.time()))
    key = base64.b64decode(secret.removeprefix("whsec_"))
    signed = f"{msg_id}.{timestamp}.{body.decode('utf-8')}".encode("utf-8")
    signature = base64.b64encode(hmac.new(key, signed, hashlib.sha256).digest()).decode("ascii")
    return {
        "webhook-id": msg_id,
        "webhook-timestamp": timestamp,
        "webhook-signature": f"v1,{signature}",
        "content-type": "application/json",
    }


def test_incoming_call_event_accepts_call(app, client):
    manager = _override(app)

    response = client.post("/api/openai/webhook", content=_incoming_event())

    assert response.status_code == 200
    assert response.json() == {"received": True, "call_id": "rtc_abc"}
    assert manager.incoming == ["rtc_abc"]


def test_other_events_are_acknowledged(app, client):
    manager = _override(app)
    body = json.dumps({"type": "response.completed", "data": {"id": "resp_1"}}).encode("utf-8")

    response = client.post("/api/openai/webhook", content=body)

    assert response.status_code == 200
    assert response.json() == {"received": True, "call_id": None}
    assert manager.incoming == []


def test_incoming_event_without_call_id_is_rejected(app, client):
    manager = _override(app)
    body = json.dumps({"type": "realtime.call.incoming", "data": {}}).encode("utf-8")

    response = client.post("/api/openai/webhook", content=body)

    assert response.status_code == 400
    assert manager.incoming == []


def test_malformed_payload_is_rejected(app, client):
    _override(app)

    response = client.post("/api/openai/webhook", content=b"not json")

    assert response.status_code == 400


def test_signed_webhook_is_verified(app, client):
    manager = _override(app, secret=WEBHOOK_SECRET)
    body = _incoming_event("rtc_signed")

    response = client.post("/api/openai/webhook", content=body, headers=_signed_headers(body, WEBHOOK_SECRET))

    assert response.status_code == 200
    assert manager.incoming == ["rtc_signed"]


def test_bad_signature_is_rejected(app, client):
    manager = _override(app, secret=WEBHOOK_SECRET)
    body = _incoming_event()
    headers = _signed_headers(body, WEBHOOK_SECRET)
    headers["webhook-signature"] = "v1,aW52YWxpZA=="

    response = client.post("/api/openai/webhook", content=body, headers=headers)

    assert response.status_code == 400
    assert manager.incoming == []
