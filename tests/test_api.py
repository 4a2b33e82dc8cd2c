"""Tests for the HTTP API."""
import pytest


async def _tournament_with(client, n, **body):
    r = await client.post("/api/tournaments", json={"name": "Test Cup", **body})
    assert r.status_code == 200
    tid = r.json()["id"]
    for i in range(1, n + 1):
        r = await client.post(
            f"/api/tournaments/{tid}/participants",
            json={"user_id": f"p{i}", "display_name": f"Player {i}", "seed": i},
        )
        assert r.status_code == 200
    return tid


async def _first_match(client, tid):
    r = await client.get(f"/api/tournaments/{tid}/bracket")
    return r.json()["rounds"][0]["matches"][0]


@pytest.mark.asyncio
async def test_health(client):
    """Health endpoint returns ok."""
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_list_tournaments_empty(client):
    r = await client.get("/api/tournaments")
    assert r.status_code == 200
    assert r.json() == []


@pytest.mark.asyncio
async def test_create_tournament(client):
    r = await client.post(
        "/api/tournaments",
        json={"name": "Test Cup", "bracket_format": "DOUBLE_ELIMINATION", "prize_pool": 25},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["name"] == "Test Cup"
    assert data["bracket_format"] == "DOUBLE_ELIMINATION"
    assert data["status"] == "REGISTRATION_OPEN"
    assert data["prize_distributed"] is False

    r = await client.get("/api/tournaments")
    assert [t["name"] for t in r.json()] == ["Test Cup"]


@pytest.mark.asyncio
async def test_create_tournament_validation(client):
    r = await client.post("/api/tournaments", json={"name": "Bad", "prize_pool": -5})
    assert r.status_code == 422
    r = await client.post("/api/tournaments", json={"name": "Bad", "bracket_format": "SWISS"})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_participant_needs_user_or_team(client):
    tid = await _tournament_with(client, 0)
    r = await client.post(f"/api/tournaments/{tid}/participants", json={"display_name": "Nobody"})
    assert r.status_code == 422
    r = await client.post(f"/api/tournaments/{tid}/participants", json={"team_id": "t1"})
    assert r.status_code == 200
    assert r.json()["entrant_id"] == "t1"


@pytest.mark.asyncio
async def test_start_and_view_bracket(client, events):
    tid = await _tournament_with(client, 4)

    r = await client.post(f"/api/tournaments/{tid}/start")
    assert r.status_code == 200
    assert r.json()["bracket_type"] == "SINGLE_ELIMINATION"
    assert "bracket:created" in events.names()

    r = await client.get(f"/api/tournaments/{tid}/bracket")
    assert r.status_code == 200
    data = r.json()
    assert data["tournament"]["status"] == "IN_PROGRESS"
    assert data["total_rounds"] == 2
    assert [rd["name"] for rd in data["rounds"]] == ["Semi-Finals", "Finals"]
    first = data["rounds"][0]["matches"][0]
    assert (first["slot_a"], first["slot_b"], first["status"]) == ("p1", "p2", "READY")

    r = await client.post(f"/api/tournaments/{tid}/start")
    assert r.status_code == 409

    r = await client.post(f"/api/tournaments/{tid}/participants", json={"user_id": "late"})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_start_needs_two_participants(client):
    tid = await _tournament_with(client, 1)
    r = await client.post(f"/api/tournaments/{tid}/start")
    assert r.status_code == 400
    r = await client.get(f"/api/tournaments/{tid}")
    assert r.json()["status"] == "REGISTRATION_OPEN"


@pytest.mark.asyncio
async def test_report_score_flow(client):
    tid = await _tournament_with(client, 4)
    await client.post(f"/api/tournaments/{tid}/start")
    match = await _first_match(client, tid)

    r = await client.post(
        f"/api/tournaments/{tid}/matches/{match['id']}/score", json={"score_a": 1, "score_b": 3}
    )
    assert r.status_code == 200
    assert r.json() == {"ok": True, "match_id": match["id"], "winner_id": "p2", "status": "COMPLETED"}

    # Same result again is a duplicate
    r = await client.post(
        f"/api/tournaments/{tid}/matches/{match['id']}/score", json={"score_a": 1, "score_b": 3}
    )
    assert r.status_code == 409

    r = await client.get(f"/api/tournaments/{tid}/bracket")
    final = r.json()["rounds"][1]["matches"][0]
    assert final["slot_a"] == "p2"

    r = await client.get(f"/api/tournaments/{tid}")
    placements = {p["user_id"]: p["placement"] for p in r.json()["participants"]}
    assert placements["p1"] == 3


@pytest.mark.asyncio
async def test_report_score_errors(client):
    tid = await _tournament_with(client, 4)
    await client.post(f"/api/tournaments/{tid}/start")
    match = await _first_match(client, tid)
    url = f"/api/tournaments/{tid}/matches/{match['id']}/score"

    r = await client.post(url, json={"score_a": 2, "score_b": 2})
    assert r.status_code == 400
    r = await client.post(f"/api/tournaments/{tid}/matches/9999/score", json={"score_a": 1, "score_b": 0})
    assert r.status_code == 404

    r = await client.get(f"/api/tournaments/{tid}/bracket")
    final = r.json()["rounds"][1]["matches"][0]
    r = await client.post(
        f"/api/tournaments/{tid}/matches/{final['id']}/score", json={"score_a": 1, "score_b": 0}
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_not_found(client):
    assert (await client.get("/api/tournaments/999")).status_code == 404
    assert (await client.get("/api/tournaments/999/bracket")).status_code == 404
    assert (await client.post("/api/tournaments/999/start")).status_code == 404
    assert (await client.post("/api/tournaments/999/byes/process")).status_code == 404
    r = await client.post("/api/tournaments/999/participants", json={"user_id": "x"})
    assert r.status_code == 404

    tid = await _tournament_with(client, 2)
    r = await client.get(f"/api/tournaments/{tid}/bracket")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_byes_processed_on_start(client):
    tid = await _tournament_with(client, 3)
    await client.post(f"/api/tournaments/{tid}/start")

    r = await client.get(f"/api/tournaments/{tid}/bracket")
    bye = r.json()["rounds"][0]["matches"][1]
    assert (bye["status"], bye["winner_id"]) == ("COMPLETED", "p3")

    r = await client.post(f"/api/tournaments/{tid}/byes/process")
    assert r.json() == {"ok": True, "processed": 0}


@pytest.mark.asyncio
async def test_double_elimination_bracket_view(client):
    tid = await _tournament_with(client, 8, bracket_format="DOUBLE_ELIMINATION")
    r = await client.post(f"/api/tournaments/{tid}/start")
    assert r.json()["bracket_type"] == "DOUBLE_ELIMINATION"

    data = (await client.get(f"/api/tournaments/{tid}/bracket")).json()
    assert data["winners_rounds"] == 3
    assert data["losers_rounds"] == 4
    assert data["winners"][-1]["name"] == "Winners Final"
    assert len(data["grand_finals"]) == 1


@pytest.mark.asyncio
async def test_prize_distribution_endpoint(client):
    tid = await _tournament_with(client, 2, prize_pool=10)
    await client.post(f"/api/tournaments/{tid}/start")

    r = await client.post(f"/api/tournaments/{tid}/prizes/distribute")
    assert r.status_code == 400

    match = await _first_match(client, tid)
    r = await client.post(
        f"/api/tournaments/{tid}/matches/{match['id']}/score", json={"score_a": 4, "score_b": 0}
    )
    assert r.status_code == 200

    r = await client.get(f"/api/tournaments/{tid}")
    data = r.json()
    assert data["status"] == "COMPLETED"
    assert data["prize_distributed"] is True
    placements = {p["user_id"]: (p["status"], p["placement"]) for p in data["participants"]}
    assert placements == {"p1": ("WINNER", 1), "p2": ("ELIMINATED", 2)}

    r = await client.post(f"/api/tournaments/{tid}/prizes/distribute")
    assert r.status_code == 200
    assert r.json()["distributed"] is False


@pytest.mark.asyncio
async def test_duplicate_registration_rejected(client):
    tid = await _tournament_with(client, 2)
    r = await client.post(f"/api/tournaments/{tid}/participants", json={"user_id": "p1"})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_check_in(client):
    tid = await _tournament_with(client, 3)
    participants = (await client.get(f"/api/tournaments/{tid}")).json()["participants"]
    for p in participants[1:]:
        r = await client.post(f"/api/tournaments/{tid}/participants/{p['id']}/check-in")
        assert r.status_code == 200
        assert r.json()["status"] == "CHECKED_IN"

    r = await client.post(f"/api/tournaments/{tid}/participants/9999/check-in")
    assert r.status_code == 404

    await client.post(f"/api/tournaments/{tid}/start")
    match = await _first_match(client, tid)
    assert (match["slot_a"], match["slot_b"]) == ("p2", "p3")

    r = await client.post(f"/api/tournaments/{tid}/participants/{participants[0]['id']}/check-in")
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_report_on_bye_conflicts(client):
    tid = await _tournament_with(client, 3)
    await client.post(f"/api/tournaments/{tid}/start")
    bye = (await client.get(f"/api/tournaments/{tid}/bracket")).json()["rounds"][0]["matches"][1]

    r = await client.post(
        f"/api/tournaments/{tid}/matches/{bye['id']}/score", json={"score_a": 1, "score_b": 0}
    )
    assert r.status_code == 409
