import json

import pytest
from fastapi.testclient import TestClient

from main import create_intake_app
from conftest import ORIGIN, OTHER_ORIGIN

HEADERS = {"Origin": ORIGIN, "Content-Type": "application/json"}


def test_health(contact_client):
    r = contact_client.get("/.well-known/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "service": "ops-contact-intake", "version": "0.1.0"}
    assert r.headers["cache-control"] == "no-store"


def test_preflight_allowed_origin(contact_client):
    r = contact_client.options("/ingress/contact", headers={"Origin": ORIGIN})
    assert r.status_code == 204
    assert r.content == b""
    assert r.headers["access-control-allow-origin"] == ORIGIN
    assert r.headers["access-control-max-age"] == "600"
    assert r.headers["vary"] == "Origin"


def test_preflight_other_origin_has_no_cors(contact_client):
    r = contact_client.options("/ingress/contact", headers={"Origin": OTHER_ORIGIN})
    assert r.status_code == 204
    assert "access-control-allow-origin" not in r.headers


def test_security_headers_on_every_response(contact_client):
    for r in (
        contact_client.get("/.well-known/health"),
        contact_client.get("/nope"),
        contact_client.post("/ingress/contact", content=b"{", headers=HEADERS),
    ):
        assert r.headers["x-content-type-options"] == "nosniff"
        assert r.headers["x-frame-options"] == "DENY"
        assert r.headers["referrer-policy"] == "no-referrer"
        assert r.headers["permissions-policy"] == "geolocation=(), microphone=(), camera=()"
        assert r.headers["content-type"] == "application/json"


def test_unknown_path_and_method_are_not_found(contact_client):
    assert contact_client.get("/nope").json() == {"error": "not_found"}
    r = contact_client.get("/ingress/contact", headers={"Origin": ORIGIN})
    assert r.status_code == 404
    assert r.json() == {"error": "not_found"}
    # The other form's route does not exist on this service
    assert contact_client.post("/ingress/join", json={}, headers=HEADERS).status_code == 404


def test_forbidden_origin(contact_client, contact_payload):
    r = contact_client.post("/ingress/contact", json=contact_payload, headers={"Origin": OTHER_ORIGIN})
    assert r.status_code == 403
    assert r.json() == {"error": "forbidden_origin"}
    assert "access-control-allow-origin" not in r.headers


def test_missing_origin_is_forbidden(contact_client, contact_payload):
    r = contact_client.post("/ingress/contact", json=contact_payload)
    assert r.status_code == 403


def test_payload_too_large_before_parsing(make_settings):
    client = TestClient(create_intake_app("contact", make_settings(max_body_bytes=100)))
    # Not JSON at all: size is checked first, so this must not come back as invalid_json
    r = client.post("/ingress/contact", content=b"x" * 101, headers=HEADERS)
    assert r.status_code == 413
    assert r.json() == {"error": "payload_too_large"}
    assert r.headers["access-control-allow-origin"] == ORIGIN


def test_invalid_json(contact_client):
    r = contact_client.post("/ingress/contact", content=b'{"Name": ', headers=HEADERS)
    assert r.status_code == 400
    assert r.json() == {"error": "invalid_json"}


def test_invalid_payload(contact_client):
    for body in ([1, 2], "text", {"form": "contact", "fields": "nope"}, {"form": "contact"}):
        r = contact_client.post("/ingress/contact", content=json.dumps(body), headers=HEADERS)
        assert r.status_code == 400, body
        assert r.json() == {"error": "invalid_payload"}


def test_empty_body_reads_as_empty_object(contact_client):
    r = contact_client.post("/ingress/contact", content=b"", headers=HEADERS)
    assert r.status_code == 400
    assert r.json() == {"error": "validation_error", "message": "missing: Name"}


def test_validation_error_message(contact_client, contact_payload):
    r = contact_client.post("/ingress/contact", json={**contact_payload, "Extra": "x"}, headers=HEADERS)
    assert r.status_code == 400
    assert r.json() == {"error": "validation_error", "message": "unexpected field: Extra"}


def test_envelope_shaped_input_accepted(contact_client, contact_payload):
    r = contact_client.post("/ingress/contact", json={"form": "contact", "fields": contact_payload}, headers=HEADERS)
    assert r.status_code == 200
    assert r.json() == {"status": "validated_only", "message": "Transit not configured"}
    assert r.headers["access-control-allow-origin"] == ORIGIN


def test_join_minimal_submission_validated_only(join_client, join_payload):
    r = join_client.post("/ingress/join", json=join_payload, headers=HEADERS)
    assert r.status_code == 200
    assert r.json()["status"] == "validated_only"


def test_per_field_byte_cap(make_settings, contact_payload):
    client = TestClient(create_intake_app("contact", make_settings(max_field_bytes=10)))
    r = client.post("/ingress/contact", json=contact_payload, headers=HEADERS)
    assert r.status_code == 400
    assert r.json() == {"error": "validation_error", "message": "field exceeds 10 bytes"}


def test_empty_honeypots_are_dropped(contact_client, contact_payload):
    body = {**contact_payload, "hp_text": "", "hp_check": False}
    r = contact_client.post("/ingress/contact", json=body, headers=HEADERS)
    assert r.status_code == 200


@pytest.mark.parametrize("trap", [{"hp_text": "buy now"}, {"hp_check": True}, {"hp_check": 0}, {"hp_text": 0.0}])
def test_filled_honeypot_rejected(contact_client, contact_payload, trap):
    r = contact_client.post("/ingress/contact", json={**contact_payload, **trap}, headers=HEADERS)
    assert r.status_code == 400
    assert r.json() == {"error": "bot_detected"}


def test_rate_limited(make_settings, contact_payload):
    settings = make_settings(rate_limit_enabled=True, rate_limit_default="2 per minute")
    client = TestClient(create_intake_app("contact", settings))
    for _ in range(2):
        assert client.post("/ingress/contact", json=contact_payload, headers=HEADERS).status_code == 200
    r = client.post("/ingress/contact", json=contact_payload, headers=HEADERS)
    assert r.status_code == 429
    assert r.json()["error"] == "rate_limited"
    assert r.headers["retry-after"] == "60"
    assert r.headers["x-content-type-options"] == "nosniff"
    # Health stays reachable for load balancers
    assert client.get("/.well-known/health").status_code == 200


def test_deeply_nested_json_is_invalid_json(contact_client):
    depth = 50_000
    body = b'{"Comments": ' + b"[" * depth + b"]" * depth + b"}"
    assert len(body) < 256_000
    r = contact_client.post("/ingress/contact", content=body, headers=HEADERS)
    assert r.status_code == 400
    assert r.json() == {"error": "invalid_json"}
