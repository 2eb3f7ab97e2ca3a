from types import SimpleNamespace

from blip.api import deps
from blip.core import config
from blip.services import users
from blip.services.rate_limit import FixedWindowRateLimiter
from blip.services.realtime import MATCH_FOUND, NEW_MESSAGE, REVEAL_CREATED, user_channel

from conftest import ALICE, BOB, CAROL, NYC, NYC_NEIGHBOUR, auth_headers, make_token

CRON = {"Authorization": "Bearer test-cron-secret"}


class PinnedLimiter(FixedWindowRateLimiter):
    """Keeps every hit in the same window."""

    def hit(self, key, now=None):
        return super().hit(key, now=30.0)


def _ping(client, user_id=None, lat=NYC[0], lng=NYC[1], **extra):
    headers = auth_headers(user_id) if user_id else {}
    return client.post("/api/v1/presence/ping", json={"lat": lat, "lng": lng, **extra}, headers=headers)


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "healthy"
    assert body["version"] == "1.0.0"


def test_unknown_route(client):
    res = client.get("/api/v1/nope")
    assert res.status_code == 404
    assert res.json() == {"error": "Endpoint not found"}


def test_missing_token(client):
    res = client.get("/api/v1/matches/pending")
    assert res.status_code == 401
    assert res.json() == {"error": "No token provided"}


def test_bad_token(client):
    headers = {"Authorization": f"Bearer {make_token(ALICE, secret='wrong')}"}
    res = client.get("/api/v1/matches/pending", headers=headers)
    assert res.status_code == 401
    assert res.json() == {"error": "Invalid token"}


def test_invalid_location(client):
    res = _ping(client, ALICE, lat=123.0)
    assert res.status_code == 400
    assert res.json() == {"error": "Valid numeric Location required"}


def test_guest_ping_sees_dots_without_presence(client):
    assert _ping(client, ALICE).json()["is_guest"] is False

    res = _ping(client)
    assert res.status_code == 200
    body = res.json()
    assert body["is_guest"] is True
    assert len(body["nearby_dots"]) == 1

    # a broken token degrades to guest instead of failing
    res = client.post(
        "/api/v1/presence/ping",
        json={"lat": NYC[0], "lng": NYC[1]},
        headers={"Authorization": "Bearer garbage"},
    )
    assert res.json()["is_guest"] is True


def test_ping_throttle(client, monkeypatch):
    monkeypatch.setattr(deps, "ping_limiter", PinnedLimiter(10, 60))

    for _ in range(10):
        assert _ping(client, ALICE).status_code == 200

    res = _ping(client, ALICE)
    assert res.status_code == 429
    assert res.headers["Retry-After"] == "30"
    assert res.json()["error"] == "Too many location updates."

    # other users have their own budget
    assert _ping(client, BOB).status_code == 200


def test_signal_throttle(client, monkeypatch):
    monkeypatch.setattr(deps, "signal_limiter", PinnedLimiter(1, 3600))
    body = {"lat": NYC[0], "lng": NYC[1]}

    assert client.post("/api/v1/signals/create", json=body, headers=auth_headers(ALICE)).status_code == 200
    res = client.post("/api/v1/signals/create", json=body, headers=auth_headers(ALICE))
    assert res.status_code == 429
    assert res.json()["error"] == "Too many signals created. Please wait."


def test_daily_quota_over_http(client, make_user):
    make_user(ALICE, signals_today=10)
    res = client.post("/api/v1/signals/create", json={"lat": NYC[0], "lng": NYC[1]}, headers=auth_headers(ALICE))
    assert res.status_code == 429
    assert res.json() == {"error": "Daily signal limit reached", "upgrade_required": True}


def test_signal_to_conversation(client, publisher):
    res = client.post("/api/v1/signals/create", json={"lat": NYC[0], "lng": NYC[1]}, headers=auth_headers(ALICE))
    assert res.status_code == 200
    assert res.json()["matches_found"] == 0

    res = client.post(
        "/api/v1/signals/create",
        json={"lat": NYC_NEIGHBOUR[0], "lng": NYC_NEIGHBOUR[1], "radius": 500},
        headers=auth_headers(BOB),
    )
    assert res.json()["matches_found"] == 1
    assert {e[0] for e in publisher.of(MATCH_FOUND)} == {user_channel(ALICE), user_channel(BOB)}

    pending = client.get("/api/v1/matches/pending", headers=auth_headers(ALICE)).json()["matches"]
    assert len(pending) == 1
    match_id = pending[0]["mutual_signal_id"]
    assert pending[0]["other_user_id"] == BOB
    assert pending[0]["acknowledged"] is False

    res = client.post(f"/api/v1/matches/{match_id}/accept", headers=auth_headers(ALICE))
    assert res.json()["reveal_created"] is False
    assert res.json()["waiting_for_other"] is True
    assert publisher.of(REVEAL_CREATED) == []

    res = client.post(f"/api/v1/matches/{match_id}/accept", headers=auth_headers(BOB))
    body = res.json()
    assert body["reveal_created"] is True
    assert body["other_user_profile"]["display_name"] == "User_11111111"
    assert len(publisher.of(REVEAL_CREATED)) == 2

    # a third party cannot touch the match
    res = client.post(f"/api/v1/matches/{match_id}/accept", headers=auth_headers(CAROL))
    assert res.status_code == 403

    reveals = client.get("/api/v1/reveals/active", headers=auth_headers(ALICE)).json()["reveals"]
    assert [r["viewed_id"] for r in reveals] == [BOB]
    reveal_id = reveals[0]["id"]

    res = client.post(
        "/api/v1/interactions/message",
        json={"reveal_id": reveal_id, "content": "  hey  "},
        headers=auth_headers(ALICE),
    )
    assert res.status_code == 200
    [(channel, _, payload)] = publisher.of(NEW_MESSAGE)
    assert channel == user_channel(BOB)
    assert payload["content"] == "hey"

    msgs = client.get(f"/api/v1/interactions/{reveal_id}", headers=auth_headers(BOB)).json()["interactions"]
    assert [(m["sender_id"], m["content"]) for m in msgs] == [(ALICE, "hey")]

    res = client.get(f"/api/v1/interactions/{reveal_id}", headers=auth_headers(CAROL))
    assert res.status_code == 404


def test_decline_over_http(client):
    client.post("/api/v1/signals/create", json={"lat": NYC[0], "lng": NYC[1]}, headers=auth_headers(ALICE))
    client.post("/api/v1/signals/create", json={"lat": NYC[0], "lng": NYC[1]}, headers=auth_headers(BOB))
    match_id = client.get("/api/v1/matches/pending", headers=auth_headers(BOB)).json()["matches"][0]["mutual_signal_id"]

    assert client.post(f"/api/v1/matches/{match_id}/decline", headers=auth_headers(BOB)).json() == {"success": True}
    assert client.get("/api/v1/matches/pending", headers=auth_headers(ALICE)).json()["matches"] == []

    res = client.post(f"/api/v1/matches/{match_id}/accept", headers=auth_headers(ALICE))
    assert res.status_code == 404


def test_report_over_http(client, make_user):
    make_user(BOB)
    res = client.post(
        "/api/v1/reports/create",
        json={"reported_user_id": BOB, "report_type": "spam"},
        headers={**auth_headers(ALICE), "device-hash": "dev-1"},
    )
    assert res.status_code == 200
    assert res.json()["report_id"]

    res = client.post(
        "/api/v1/reports/create",
        json={"reported_user_id": ALICE, "report_type": "spam"},
        headers=auth_headers(ALICE),
    )
    assert res.status_code == 400


def test_report_cap_sends_retry_after(client, make_user, monkeypatch):
    monkeypatch.setattr(config, "RATE_LIMIT_REPORTS_PER_DAY", 1)
    make_user(BOB)
    body = {"reported_user_id": BOB, "report_type": "spam"}

    assert client.post("/api/v1/reports/create", json=body, headers=auth_headers(ALICE)).status_code == 200
    res = client.post("/api/v1/reports/create", json=body, headers=auth_headers(ALICE))

    assert res.status_code == 429
    assert res.json()["error"] == "Daily report limit reached"
    retry_after = int(res.headers["Retry-After"])
    assert 0 < retry_after <= 24 * 3600
    assert res.json()["retry_after"] == retry_after


def test_signup_and_profile(client, monkeypatch):
    auth = SimpleNamespace(sign_up=lambda creds: SimpleNamespace(user=SimpleNamespace(id=ALICE)))
    monkeypatch.setattr(users, "supabase_admin", lambda: SimpleNamespace(auth=auth))

    res = client.post(
        "/api/v1/users/create",
        json={"email": "a@example.com", "password": "pw-123456", "display_name": "Alice"},
    )
    assert res.status_code == 200
    assert res.json()["user"]["id"] == ALICE

    profile = client.get("/api/v1/user/profile", headers=auth_headers(ALICE)).json()["profile"]
    assert profile["display_name"] == "Alice"

    res = client.patch("/api/v1/user/profile", json={"short_bio": "coffee"}, headers=auth_headers(ALICE))
    assert res.json()["profile"]["short_bio"] == "coffee"

    stats = client.get("/api/v1/user/stats", headers=auth_headers(ALICE)).json()
    assert stats["total_matches"] == 0
    assert stats["subscription_tier"] == "free"

    assert client.get("/api/v1/user/profile", headers=auth_headers(BOB)).status_code == 404


def test_cleanup_requires_secret(client):
    assert client.post("/api/v1/maintenance/cleanup").status_code == 401
    res = client.post("/api/v1/maintenance/cleanup", headers={"Authorization": "Bearer wrong"})
    assert res.status_code == 401
    assert res.json() == {"error": "Unauthorized"}


def test_cleanup_runs_every_task(client):
    res = client.post("/api/v1/maintenance/cleanup", headers=CRON)
    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert len(body["results"]) == 7
    assert not any("error" in r for r in body["results"])


def test_maintenance_stats(client):
    _ping(client, ALICE)
    client.post("/api/v1/signals/create", json={"lat": NYC[0], "lng": NYC[1]}, headers=auth_headers(ALICE))

    stats = client.get("/api/v1/maintenance/stats", headers=CRON).json()
    assert stats["active_users"] == 1
    assert stats["active_signals"] == 1
    assert stats["issues"] == []
