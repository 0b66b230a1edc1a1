import uuid
from datetime import datetime, timedelta, timezone

from station_presence.schemas import Event

HDR = {"X-Station-Id": "station-a"}
OTHER = {"X-Station-Id": "station-b"}

def _training(client, headers=HDR):
    acts = client.get("/activities", headers=headers).json()
    return next(a for a in acts if a["name"] == "Training")

def _member(client, name="Alex Smith", headers=HDR):
    r = client.post("/members", json={"name": name, "rank": "Lieutenant"}, headers=headers)
    assert r.status_code == 201
    return r.json()

def test_health(client):
    assert client.get("/health").json()["status"] == "ok"

def test_check_in_scenario(client):
    m = _member(client)
    r = client.post("/checkins", json={"member_id": m["id"]}, headers=HDR)
    assert r.status_code == 400
    assert r.json()["detail"] == "No active activity set"

    t = _training(client)
    r = client.post("/activities/active", json={"activity_id": t["id"]}, headers=HDR)
    assert r.status_code == 200 and r.json()["activity"]["name"] == "Training"

    r = client.post("/checkins", json={"member_id": m["id"], "method": "kiosk"}, headers=HDR)
    assert r.status_code == 201 and r.json()["action"] == "checked-in"
    assert len(client.get("/checkins/active", headers=HDR).json()) == 1

    r = client.post("/checkins", json={"member_id": m["id"]}, headers=HDR)
    assert r.status_code == 200 and r.json()["action"] == "undone"
    assert client.get("/checkins/active", headers=HDR).json() == []

def test_event_scenario(client):
    m = _member(client)
    t = _training(client)
    r = client.post("/events", json={"activity_id": t["id"]}, headers=HDR)
    assert r.status_code == 201
    event_id = r.json()["id"]

    r = client.post(f"/events/{event_id}/participants", json={"member_id": m["id"]}, headers=HDR)
    assert r.status_code == 201 and r.json()["action"] == "added"
    detail = client.get(f"/events/{event_id}", headers=HDR).json()
    assert detail["participant_count"] == 1

    ended = client.put(f"/events/{event_id}/end", headers=HDR).json()
    again = client.put(f"/events/{event_id}/end", headers=HDR).json()
    assert ended["end_time"] == again["end_time"]

    r = client.post(f"/events/{event_id}/participants", json={"member_id": m["id"]}, headers=HDR)
    assert r.status_code == 400

    r = client.put(f"/events/{event_id}/reactivate", headers=HDR)
    assert r.status_code == 200 and r.json()["is_active"]

    audit = client.get(f"/events/{event_id}/audit", headers=HDR).json()
    assert audit["total_logs"] == 1

def test_cross_station_is_not_found(client):
    m = _member(client)
    assert client.get(f"/members/{m['id']}", headers=OTHER).status_code == 404
    t = _training(client)
    r = client.post("/events", json={"activity_id": t["id"]}, headers=OTHER)
    assert r.status_code == 404

def test_station_query_param(client):
    m = _member(client, headers={})
    assert m["station_id"] == "default-station"
    r = client.get("/members", params={"stationId": "station-q"})
    assert r.json() == []

def test_url_check_in_body_station_wins(client):
    m = _member(client)
    t = _training(client)
    client.post("/activities/active", json={"activity_id": t["id"]}, headers=HDR)
    r = client.post(
        "/checkins/url-checkin",
        json={"identifier": "alex smith", "station_id": "station-a"},
        headers=OTHER,
    )
    assert r.status_code == 201
    assert r.json()["member"] == m["name"]
    r = client.post("/checkins/url-checkin", json={"identifier": m["qr_code"]}, headers=HDR)
    assert r.status_code == 200 and r.json()["action"] == "already-checked-in"

def test_rollover_endpoint(client):
    r = client.post("/events/admin/rollover", params={"scope": "station"}, headers=HDR)
    body = r.json()
    assert r.status_code == 200
    assert body["message"] == "Rollover completed successfully"
    assert body["deactivated_count"] == 0
    assert body["expiry_hours"] == 12

def test_member_qr_png(client):
    m = _member(client)
    r = client.get(f"/members/{m['id']}/qr.png", headers=HDR)
    assert r.status_code == 200
    assert r.headers["content-type"] == "image/png"
    assert r.content[:8] == b"\x89PNG\r\n\x1a\n"

def test_delete_builtin_activity_rejected(client):
    t = _training(client)
    assert client.delete(f"/activities/{t['id']}", headers=HDR).status_code == 400

def test_reactivate_outside_window_is_403(client):
    t = _training(client)
    repo = client.app.state.repository
    now = datetime.now(timezone.utc)
    old = Event(
        id=str(uuid.uuid4()), station_id="station-a", activity_id=t["id"], activity_name=t["name"],
        start_time=now - timedelta(hours=40), end_time=now - timedelta(hours=25), is_active=False,
        created_at=now - timedelta(hours=40), updated_at=now - timedelta(hours=25),
    )
    client.portal.call(repo.create_event, old)
    r = client.put(f"/events/{old.id}/reactivate", headers=HDR)
    assert r.status_code == 403
    assert "24 hours" in r.json()["detail"]

def test_event_listings_carry_participants(client):
    m = _member(client)
    t = _training(client)
    event_id = client.post("/events", json={"activity_id": t["id"]}, headers=HDR).json()["id"]
    client.post(f"/events/{event_id}/participants", json={"member_id": m["id"]}, headers=HDR)
    for path in ("/events", "/events/active"):
        body = client.get(path, headers=HDR).json()
        assert body[0]["participant_count"] == 1
        assert body[0]["participants"][0]["member_name"] == "Alex Smith"
