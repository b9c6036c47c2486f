"""Tests for the HTTP API."""
import pytest


async def _setup_tournament(client, teams=4, rooms=2, adjudicators=2):
    r = await client.post("/api/tournaments", json={"name": "API Open", "format": "AP"})
    assert r.status_code == 200
    tid = r.json()["id"]
    for i in range(1, teams + 1):
        r = await client.post(
            f"/api/tournaments/{tid}/teams",
            json={"name": f"Team {i}", "speaker_names": [f"S{i}a", f"S{i}b", f"S{i}c"]},
        )
        assert r.status_code == 200
    for i in range(1, rooms + 1):
        r = await client.post(f"/api/tournaments/{tid}/rooms", json={"name": f"Room {i}"})
        assert r.status_code == 200
    for i in range(1, adjudicators + 1):
        r = await client.post(f"/api/tournaments/{tid}/adjudicators", json={"name": f"Adj {i}", "strength": 6})
        assert r.status_code == 200
    r = await client.post(
        f"/api/tournaments/{tid}/rounds",
        json={"round_number": 1, "name": "Round 1", "motion_1": "THW ban zoos"},
    )
    assert r.status_code == 200
    return tid, r.json()["id"]


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
    r = await client.post("/api/tournaments", json={"name": "Test Cup", "format": "BP"})
    assert r.status_code == 200
    data = r.json()
    assert data["name"] == "Test Cup"
    assert data["format"] == "BP"
    assert data["status"] == "setup"
    assert "id" in data


@pytest.mark.asyncio
async def test_create_tournament_rejects_unknown_format(client):
    r = await client.post("/api/tournaments", json={"name": "Test Cup", "format": "1v1"})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_get_missing_tournament(client):
    r = await client.get("/api/tournaments/999")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_team_needs_two_or_three_speakers(client):
    r = await client.post("/api/tournaments", json={"name": "Speakers"})
    tid = r.json()["id"]
    r = await client.post(f"/api/tournaments/{tid}/teams", json={"name": "Solo", "speaker_names": ["Only"]})
    assert r.status_code == 422
    r = await client.post(f"/api/tournaments/{tid}/teams", json={"name": "Duo", "speaker_names": ["A", " B "]})
    assert r.status_code == 200
    assert r.json()["speaker_names"] == ["A", "B"]


@pytest.mark.asyncio
async def test_institution_in_use_cannot_be_deleted(client):
    r = await client.post("/api/institutions", json={"name": "Uni", "code": "UNI"})
    iid = r.json()["id"]
    r = await client.post("/api/tournaments", json={"name": "Inst"})
    tid = r.json()["id"]
    r = await client.post(
        f"/api/tournaments/{tid}/teams",
        json={"name": "Uni A", "institution_id": iid, "speaker_names": ["A", "B"]},
    )
    assert r.status_code == 200
    r = await client.delete(f"/api/institutions/{iid}")
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_draw_publish_and_view(client):
    tid, rid = await _setup_tournament(client)

    r = await client.post(f"/api/rounds/{rid}/draw/generate", json={"seed": 3})
    assert r.status_code == 200
    proposal = r.json()
    assert len(proposal["pairings"]) == 2
    assert proposal["pairings"][0]["government_team_name"] == "Team 1"
    assert proposal["pairings"][0]["motion"] == "THW ban zoos"
    assert proposal["warnings"] == []

    pairings = [
        {k: p[k] for k in ("government_team_id", "opposition_team_id", "room_id", "motion", "adjudicator_id")}
        for p in proposal["pairings"]
    ]
    r = await client.post(f"/api/rounds/{rid}/draw/publish", json={"pairings": pairings})
    assert r.status_code == 200
    assert r.json()["created"] == 2

    r = await client.get(f"/api/rounds/{rid}/draw")
    assert r.status_code == 200
    draw = r.json()
    assert draw["round"]["status"] == "ongoing"
    assert len(draw["debates"]) == 2
    assert {t["position"] for t in draw["debates"][0]["teams"]} == {"government", "opposition"}
    assert draw["debates"][0]["adjudicators"][0]["role"] == "chair"

    r = await client.post(f"/api/rounds/{rid}/draw/publish", json={"pairings": pairings})
    assert r.status_code == 409
    assert r.json()["detail"]["confirm"] == "confirm_replace"

    r = await client.post(
        f"/api/rounds/{rid}/draw/publish", json={"pairings": pairings, "confirm_replace": True}
    )
    assert r.status_code == 200
    assert r.json()["replaced"] == 2

    r = await client.delete(f"/api/rounds/{rid}/draw")
    assert r.status_code == 200
    assert r.json()["removed"] == 2
    r = await client.get(f"/api/rounds/{rid}")
    assert r.json()["status"] == "setup"


@pytest.mark.asyncio
async def test_generate_without_rooms_is_bad_request(client):
    _, rid = await _setup_tournament(client, rooms=0)
    r = await client.post(f"/api/rounds/{rid}/draw/generate")
    assert r.status_code == 400
    assert "rooms" in r.json()["detail"]


@pytest.mark.asyncio
async def test_publish_unchaired_needs_confirmation(client):
    _, rid = await _setup_tournament(client, adjudicators=0)
    r = await client.post(f"/api/rounds/{rid}/draw/generate")
    pairings = r.json()["pairings"]
    r = await client.post(f"/api/rounds/{rid}/draw/publish", json={"pairings": pairings})
    assert r.status_code == 409
    assert r.json()["detail"]["confirm"] == "confirm_unchaired"


@pytest.mark.asyncio
async def test_ballot_and_standings(client):
    tid, rid = await _setup_tournament(client)
    r = await client.post(f"/api/rounds/{rid}/draw/generate", json={"seed": 1})
    pairings = r.json()["pairings"]
    r = await client.post(f"/api/rounds/{rid}/draw/publish", json={"pairings": pairings})
    debate_ids = r.json()["debate_ids"]

    for debate_id in debate_ids:
        r = await client.post(
            f"/api/debates/{debate_id}/ballot",
            json={"winner": "government", "government_scores": [76, 75, 74], "opposition_scores": [73, 72, 71]},
        )
        assert r.status_code == 200
        assert r.json()["status"] == "completed"

    r = await client.get(f"/api/rounds/{rid}")
    assert r.json()["status"] == "completed"

    r = await client.get(f"/api/tournaments/{tid}/standings/teams")
    assert r.status_code == 200
    tab = r.json()
    assert [row["total_points"] for row in tab] == [1, 1, 0, 0]
    assert tab[0]["total_speaks"] == 225.0

    r = await client.get(f"/api/tournaments/{tid}/standings/speakers")
    assert len(r.json()) == 12

    r = await client.get(f"/api/tournaments/{tid}/standings/adjudicators")
    assert sum(row["debates_chaired"] for row in r.json()) == 2


@pytest.mark.asyncio
async def test_ballot_rejects_bad_score(client):
    _, rid = await _setup_tournament(client)
    r = await client.post(f"/api/rounds/{rid}/draw/generate")
    r = await client.post(f"/api/rounds/{rid}/draw/publish", json={"pairings": r.json()["pairings"]})
    debate_id = r.json()["debate_ids"][0]
    r = await client.post(
        f"/api/debates/{debate_id}/ballot",
        json={"winner": "government", "government_scores": [150, 75], "opposition_scores": [70, 70]},
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_elimination_over_http(client):
    tid, _ = await _setup_tournament(client, teams=4)

    r = await client.get(f"/api/tournaments/{tid}/breaks/preview")
    assert r.status_code == 200
    preview = r.json()
    assert [t["seed"] for t in preview["breaking_teams"]] == [1, 2, 3, 4]

    rooms = [room["id"] for room in (await client.get(f"/api/tournaments/{tid}/rooms")).json()]
    semis = [
        {**pair, "room_id": rooms[i], "motions": ["THW semi"]}
        for i, pair in enumerate(preview["suggested_semi_finals"])
    ]
    r = await client.post(f"/api/tournaments/{tid}/breaks", json={"semi_finals": semis})
    assert r.status_code == 200
    created = r.json()["semi_finals"]
    assert [s["name"] for s in created] == ["Semi-Final A", "Semi-Final B"]

    r = await client.get(f"/api/tournaments/{tid}/elimination")
    assert r.json()["state"] == "semis_scheduled"

    draw = (await client.get(f"/api/rounds/{created[0]['id']}/draw")).json()
    r = await client.post(
        f"/api/debates/{draw['debates'][0]['debate_id']}/ballot",
        json={"winner": "government", "government_scores": [75, 75], "opposition_scores": [74, 74]},
    )
    assert r.status_code == 200

    r = await client.post(f"/api/tournaments/{tid}/finals")
    assert r.status_code == 409
    detail = r.json()["detail"]
    assert detail["round_name"] == "Semi-Final B"
    assert detail["round_id"] == created[1]["id"]

    draw = (await client.get(f"/api/rounds/{created[1]['id']}/draw")).json()
    await client.post(
        f"/api/debates/{draw['debates'][0]['debate_id']}/ballot",
        json={"winner": "opposition", "government_scores": [75, 75], "opposition_scores": [76, 76]},
    )
    r = await client.post(f"/api/tournaments/{tid}/finals", json={"motions": ["THW final"]})
    assert r.status_code == 200
    assert r.json()["name"] == "Grand Final"
    assert r.json()["break_stage"] == "final"

    r = await client.get(f"/api/tournaments/{tid}/elimination")
    assert r.json()["state"] == "finals_seeded"


@pytest.mark.asyncio
async def test_delete_round_with_draw(client):
    _, rid = await _setup_tournament(client)
    r = await client.post(f"/api/rounds/{rid}/draw/generate")
    await client.post(f"/api/rounds/{rid}/draw/publish", json={"pairings": r.json()["pairings"]})

    r = await client.delete(f"/api/rounds/{rid}")
    assert r.status_code == 200
    r = await client.get(f"/api/rounds/{rid}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_team_in_draw_cannot_be_deleted(client):
    tid, rid = await _setup_tournament(client)
    r = await client.post(f"/api/rounds/{rid}/draw/generate")
    await client.post(f"/api/rounds/{rid}/draw/publish", json={"pairings": r.json()["pairings"]})
    team_id = r.json()["pairings"][0]["government_team_id"]

    r = await client.delete(f"/api/teams/{team_id}")
    assert r.status_code == 400

    r = await client.delete(f"/api/tournaments/{tid}")
    assert r.status_code == 200
    r = await client.get(f"/api/tournaments/{tid}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_ballot_without_scores_is_rejected(client):
    _, rid = await _setup_tournament(client)
    r = await client.post(f"/api/rounds/{rid}/draw/generate")
    r = await client.post(f"/api/rounds/{rid}/draw/publish", json={"pairings": r.json()["pairings"]})
    debate_id = r.json()["debate_ids"][0]
    r = await client.post(f"/api/debates/{debate_id}/ballot", json={"winner": "government"})
    assert r.status_code == 400
    assert "speaker scores are required" in r.json()["detail"]
    r = await client.get(f"/api/rounds/{rid}/draw")
    assert all(d["status"] == "pending" for d in r.json()["debates"])


@pytest.mark.asyncio
async def test_adjudicator_debates_view(client):
    tid, rid = await _setup_tournament(client)
    r = await client.post(f"/api/rounds/{rid}/draw/generate", json={"seed": 2})
    pairings = r.json()["pairings"]
    r = await client.post(f"/api/rounds/{rid}/draw/publish", json={"pairings": pairings})
    debate_id = r.json()["debate_ids"][0]
    adj_id = pairings[0]["adjudicator_id"]
    r = await client.post(
        f"/api/debates/{debate_id}/ballot",
        json={"winner": "opposition", "government_scores": [72, 71], "opposition_scores": [75, 74]},
    )
    assert r.status_code == 200

    r = await client.get(f"/api/adjudicators/{adj_id}/debates")
    assert r.status_code == 200
    view = r.json()
    assert view["adjudicator"]["id"] == adj_id
    (debate,) = view["debates"]
    assert debate["debate_id"] == debate_id
    assert debate["round"]["name"] == "Round 1"
    assert debate["role"] == "chair"
    assert debate["motion"] == "THW ban zoos"
    gov, opp = debate["teams"]
    assert gov["name"] == pairings[0]["government_team_name"]
    assert len(gov["speaker_names"]) == 3
    assert [s["score"] for s in opp["scores"]] == [75, 74]

    r = await client.get("/api/adjudicators/999/debates")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_update_room(client):
    r = await client.post("/api/tournaments", json={"name": "Rooms"})
    tid = r.json()["id"]
    r = await client.post(f"/api/tournaments/{tid}/rooms", json={"name": "Room 1"})
    room_id = r.json()["id"]

    r = await client.patch(f"/api/rooms/{room_id}", json={"name": "Hall A", "capacity": 80})
    assert r.status_code == 200
    assert (r.json()["name"], r.json()["capacity"]) == ("Hall A", 80)
    r = await client.patch(f"/api/rooms/{room_id}", json={"capacity": 40})
    assert (r.json()["name"], r.json()["capacity"]) == ("Hall A", 40)

    r = await client.get(f"/api/tournaments/{tid}/rooms")
    assert [room["name"] for room in r.json()] == ["Hall A"]
    r = await client.patch(f"/api/rooms/{room_id}", json={"capacity": 0})
    assert r.status_code == 422
    r = await client.patch("/api/rooms/999", json={"name": "Nowhere"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_update_institution(client):
    r = await client.post("/api/institutions", json={"name": "Uni", "code": "UNI"})
    iid = r.json()["id"]

    r = await client.patch(f"/api/institutions/{iid}", json={"name": "University of Testing"})
    assert r.status_code == 200
    assert r.json() == {"id": iid, "name": "University of Testing", "code": "UNI"}
    r = await client.patch(f"/api/institutions/{iid}", json={"code": "UOT"})
    assert r.json()["code"] == "UOT"

    r = await client.get("/api/institutions")
    assert [(i["name"], i["code"]) for i in r.json()] == [("University of Testing", "UOT")]
    r = await client.patch("/api/institutions/999", json={"name": "Ghost"})
    assert r.status_code == 404
