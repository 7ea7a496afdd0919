"""Tests for the HTTP API: envelope, auth, tournaments and registrations."""
from datetime import datetime, timedelta, timezone

import pytest

import config


def _future(days=7):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


async def _create(client, headers, **overrides):
    body = {"name": "Test Cup", "game": "Chess", "date": _future(), "max_players": 2}
    body.update(overrides)
    r = await client.post("/api/tournaments", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


@pytest.mark.asyncio
async def test_health(client):
    """Health endpoint returns ok."""
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"success": True, "status": "ok"}


@pytest.mark.asyncio
async def test_list_tournaments_empty(client):
    r = await client.get("/api/tournaments")
    assert r.status_code == 200
    assert r.json() == {"success": True, "data": []}


@pytest.mark.asyncio
async def test_create_tournament(client, auth_headers):
    """New tournaments start open with no players."""
    r = await client.post(
        "/api/tournaments",
        json={"name": "Test Cup", "game": "Chess", "date": _future(), "max_players": 8, "tags": ["blitz"]},
        headers=auth_headers,
    )
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    assert body["message"] == "Tournament created"
    data = body["data"]
    assert data["name"] == "Test Cup"
    assert data["current_players"] == 0
    assert data["free_places"] == 8
    assert data["status"] == "registration_open"
    assert data["tags"] == ["blitz"]
    assert data["date"].endswith("+00:00")


@pytest.mark.asyncio
async def test_create_requires_auth(client):
    r = await client.post("/api/tournaments", json={"name": "X", "game": "Chess", "date": _future(), "max_players": 4})
    assert r.status_code == 401
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_member_cannot_create(client, make_member):
    headers = await make_member("player1")
    r = await client.post(
        "/api/tournaments", json={"name": "X", "game": "Chess", "date": _future(), "max_players": 4}, headers=headers
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_create_validation_error(client, auth_headers):
    r = await client.post(
        "/api/tournaments",
        json={"name": "Tiny", "game": "Chess", "date": _future(), "max_players": 1},
        headers=auth_headers,
    )
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["message"] == "Invalid data"
    assert any(d.startswith("max_players") for d in body["details"])


@pytest.mark.asyncio
async def test_duplicate_tournament(client, auth_headers):
    date = _future()
    await _create(client, auth_headers, date=date)
    r = await client.post(
        "/api/tournaments",
        json={"name": "test cup", "game": "Chess", "date": date, "max_players": 4},
        headers=auth_headers,
    )
    assert r.status_code == 400
    assert r.json()["reason"] == "duplicate tournament"


@pytest.mark.asyncio
async def test_get_unknown_tournament(client):
    r = await client.get("/api/tournaments/9999")
    assert r.status_code == 404
    assert r.json() == {"success": False, "message": "Tournament not found", "reason": "tournament not found"}


@pytest.mark.asyncio
async def test_register_flow(client, auth_headers, make_member):
    """Two members fill a two-place tournament, the third is refused until a place frees up."""
    t = await _create(client, auth_headers)
    alice = await make_member("alice")
    bob = await make_member("bob")
    carol = await make_member("carol")

    r = await client.post(f"/api/tournaments/{t['id']}/register", headers=alice)
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["status"] == "confirmed"
    assert data["tournament"]["current_players"] == 1
    assert data["member"]["username"] == "alice"

    r = await client.post(f"/api/tournaments/{t['id']}/register", headers=alice)
    assert r.status_code == 400
    assert r.json()["message"] == "You are already registered for this tournament"

    r = await client.post(f"/api/tournaments/{t['id']}/register", json={"notes": "late"}, headers=bob)
    assert r.status_code == 201

    r = await client.post(f"/api/tournaments/{t['id']}/register", headers=carol)
    assert r.status_code == 400
    assert r.json()["reason"] == "full"

    r = await client.delete(f"/api/tournaments/{t['id']}/register", headers=alice)
    assert r.status_code == 200
    assert r.json()["message"] == "Unregistration successful"

    r = await client.post(f"/api/tournaments/{t['id']}/register", headers=carol)
    assert r.status_code == 201

    r = await client.get(f"/api/tournaments/{t['id']}")
    data = r.json()["data"]
    assert data["current_players"] == 2
    assert data["free_places"] == 0
    assert "registration_closed" in data["allowed_statuses"]


@pytest.mark.asyncio
async def test_register_requires_auth_and_tournament(client, make_member):
    r = await client.post("/api/tournaments/1/register")
    assert r.status_code == 401
    headers = await make_member("alice")
    r = await client.post("/api/tournaments/9999/register", headers=headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_unregister_without_registration(client, auth_headers, make_member):
    t = await _create(client, auth_headers)
    headers = await make_member("alice")
    r = await client.delete(f"/api/tournaments/{t['id']}/register", headers=headers)
    assert r.status_code == 404
    assert r.json()["message"] == "No registration found for this tournament"


@pytest.mark.asyncio
async def test_waitlist_promotion(client, auth_headers, make_member):
    t = await _create(client, auth_headers)
    alice, bob, carol = [await make_member(n) for n in ("alice", "bob", "carol")]
    for headers in (alice, bob):
        await client.post(f"/api/tournaments/{t['id']}/register", headers=headers)

    r = await client.post(f"/api/tournaments/{t['id']}/waitlist", headers=carol)
    assert r.status_code == 201
    waiting = r.json()["data"]
    assert waiting["status"] == "waitlisted"

    await client.delete(f"/api/tournaments/{t['id']}/register", headers=alice)
    r = await client.get(f"/api/tournaments/{t['id']}/registrations", headers=auth_headers)
    assert r.status_code == 200
    by_member = {reg["member"]["username"]: reg["status"] for reg in r.json()["data"]}
    assert by_member == {"bob": "confirmed", "carol": "confirmed"}


@pytest.mark.asyncio
async def test_status_change_and_closed_registration(client, auth_headers, make_member):
    t = await _create(client, auth_headers)
    r = await client.post(f"/api/tournaments/{t['id']}/status", json={"status": "registration_closed"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "registration_closed"

    headers = await make_member("alice")
    r = await client.post(f"/api/tournaments/{t['id']}/register", headers=headers)
    assert r.status_code == 400
    assert r.json()["reason"] == "registrations not open"

    r = await client.post(f"/api/tournaments/{t['id']}/status", json={"status": "completed"}, headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["reason"] == "invalid transition"


@pytest.mark.asyncio
async def test_deadline_passed(client, auth_headers, make_member):
    past = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
    t = await _create(client, auth_headers, registration_deadline=past)
    headers = await make_member("alice")
    r = await client.post(f"/api/tournaments/{t['id']}/register", headers=headers)
    assert r.status_code == 400
    assert r.json()["message"] == "Registration deadline has passed"


@pytest.mark.asyncio
async def test_update_and_delete_tournament(client, auth_headers, make_member):
    t = await _create(client, auth_headers, max_players=3)
    alice = await make_member("alice")
    r = await client.post(f"/api/tournaments/{t['id']}/register", headers=alice)
    reg_id = r.json()["data"]["id"]

    r = await client.put(f"/api/tournaments/{t['id']}", json={"max_players": 4, "description": "Bigger"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["max_players"] == 4

    r = await client.delete(f"/api/tournaments/{t['id']}", headers=auth_headers)
    assert r.status_code == 400
    assert r.json()["reason"] == "tournament has registrations"

    r = await client.post(f"/api/registrations/{reg_id}/cancel", headers=alice)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "cancelled"

    r = await client.delete(f"/api/tournaments/{t['id']}", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"] == {"deleted": "Test Cup"}
    r = await client.get(f"/api/tournaments/{t['id']}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_registration_actions(client, auth_headers, make_member):
    t = await _create(client, auth_headers)
    alice = await make_member("alice")
    bob = await make_member("bob")
    r = await client.post(f"/api/tournaments/{t['id']}/register", headers=alice)
    reg_id = r.json()["data"]["id"]

    r = await client.post(f"/api/registrations/{reg_id}/check-in", headers=alice)
    assert r.status_code == 403
    r = await client.post(f"/api/registrations/{reg_id}/check-in", headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["checked_in"] is True

    r = await client.put(f"/api/registrations/{reg_id}/result", json={"position": 1, "points": 3}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["position"] == 1

    r = await client.put(f"/api/registrations/{reg_id}/feedback", json={"rating": 4}, headers=bob)
    assert r.status_code == 403
    r = await client.put(f"/api/registrations/{reg_id}/feedback", json={"rating": 4, "comment": "Nice"}, headers=alice)
    assert r.status_code == 200
    assert r.json()["data"]["rating"] == 4

    r = await client.post(f"/api/registrations/{reg_id}/cancel", headers=bob)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_listing_views(client, auth_headers):
    await _create(client, auth_headers, name="Soon", date=_future(2))
    await _create(client, auth_headers, name="Later", date=_future(20))

    r = await client.get("/api/tournaments/weekly")
    assert [t["name"] for t in r.json()["data"]["tournaments"]] == ["Soon"]
    r = await client.get("/api/tournaments/monthly")
    assert [t["name"] for t in r.json()["data"]["tournaments"]] == ["Soon", "Later"]
    r = await client.get("/api/tournaments/upcoming")
    assert len(r.json()["data"]) == 2
    r = await client.get("/api/tournaments", params={"game": "chess"})
    assert len(r.json()["data"]) == 2
    r = await client.get("/api/tournaments/calendar/2026/13")
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_signup_and_login(client):
    r = await client.post("/api/auth/register", json={"username": "newbie", "password": "secret123"})
    assert r.status_code == 201
    assert r.json()["data"]["user"]["role"] == "member"

    r = await client.post("/api/auth/register", json={"username": "newbie", "password": "secret123"})
    assert r.status_code == 400

    r = await client.post("/api/auth/register", json={"username": "shorty", "password": "123"})
    assert r.status_code == 400

    r = await client.post("/api/auth/login", json={"username": "newbie", "password": "wrong"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid username or password"

    r = await client.post("/api/auth/login", json={"username": "newbie", "password": "secret123"})
    assert r.status_code == 200
    token = r.json()["data"]["access_token"]
    r = await client.get("/api/auth/me", headers={"X-Auth-Token": token})
    assert r.status_code == 200
    assert r.json()["data"]["username"] == "newbie"


@pytest.mark.asyncio
async def test_me_registrations_and_stats(client, auth_headers, make_member):
    t = await _create(client, auth_headers)
    alice = await make_member("alice")
    await client.post(f"/api/tournaments/{t['id']}/register", headers=alice)

    r = await client.get("/api/users/me/registrations", headers=alice)
    assert r.status_code == 200
    regs = r.json()["data"]["registrations"]
    assert [reg["tournament"]["name"] for reg in regs] == ["Test Cup"]

    r = await client.get("/api/stats")
    assert r.status_code == 200
    assert r.json()["data"]["total_tournaments"] == 1

    r = await client.get("/api/tournaments/stats", headers=alice)
    assert r.status_code == 403
    r = await client.get("/api/tournaments/stats", headers=auth_headers)
    assert r.json()["data"]["stats"]["total_registrations"] == 1


@pytest.mark.asyncio
async def test_user_admin(client, auth_headers, make_member):
    alice = await make_member("alice")
    r = await client.get("/api/users", params={"search": "ali"}, headers=auth_headers)
    assert r.status_code == 200
    users = r.json()["data"]["users"]
    assert [u["username"] for u in users] == ["alice"]
    alice_id = users[0]["id"]

    r = await client.get("/api/users", headers=alice)
    assert r.status_code == 403

    r = await client.put(f"/api/users/{alice_id}/role", json={"role": "organizer"}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["role"] == "organizer"

    r = await client.put(f"/api/users/{alice_id}/role", json={"role": "wizard"}, headers=auth_headers)
    assert r.status_code == 400

    r = await client.put(f"/api/users/{alice_id}/status", json={"is_active": False}, headers=auth_headers)
    assert r.status_code == 200
    r = await client.get("/api/auth/me", headers=alice)
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_raising_capacity_serves_waitlist_before_newcomers(client, auth_headers, make_member):
    t = await _create(client, auth_headers)
    alice, bob, carol, dave = [await make_member(n) for n in ("alice", "bob", "carol", "dave")]
    for headers in (alice, bob):
        await client.post(f"/api/tournaments/{t['id']}/register", headers=headers)
    r = await client.post(f"/api/tournaments/{t['id']}/waitlist", headers=carol)
    assert r.json()["data"]["status"] == "waitlisted"

    r = await client.put(f"/api/tournaments/{t['id']}", json={"max_players": 3}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["data"]["current_players"] == 3

    r = await client.post(f"/api/tournaments/{t['id']}/register", headers=dave)
    assert r.status_code == 400
    assert r.json()["reason"] == "full"

    r = await client.get(f"/api/tournaments/{t['id']}/registrations", headers=auth_headers)
    by_member = {reg["member"]["username"]: reg["status"] for reg in r.json()["data"]}
    assert by_member == {"alice": "confirmed", "bob": "confirmed", "carol": "confirmed"}


@pytest.mark.asyncio
async def test_private_tournaments_hidden_from_anonymous(client, auth_headers, make_member):
    await _create(client, auth_headers, name="Open Cup")
    await _create(client, auth_headers, name="Club Night", is_public=False)

    r = await client.get("/api/tournaments")
    assert [t["name"] for t in r.json()["data"]] == ["Open Cup"]

    r = await client.get("/api/tournaments", headers=auth_headers)
    assert sorted(t["name"] for t in r.json()["data"]) == ["Club Night", "Open Cup"]


@pytest.mark.asyncio
async def test_auth_errors_follow_locale(client, monkeypatch):
    monkeypatch.setattr(config, "LOCALE", "fr")
    r = await client.post("/api/auth/login", json={"username": "admin", "password": "wrong"})
    assert r.status_code == 401
    assert r.json()["message"] == "Nom d'utilisateur ou mot de passe incorrect"

    r = await client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["message"] == "Authentification requise"

    r = await client.post("/api/auth/register", json={"username": "newbie", "password": "123"})
    assert r.json()["message"] == "Le mot de passe doit contenir au moins 6 caractères"
