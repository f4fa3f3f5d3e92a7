import random
import re
import uuid

import pytest

from friendspo.dependencies import get_current_user
from friendspo.errors import AlreadyMemberError, NotFoundError, ValidationError
from friendspo.main import app
from friendspo.services import league_service

CODE_PATTERN = re.compile(r"^[A-Z0-9]{0,4}-\d{4}$")


def test_generate_league_code_prefix():
    code = league_service.generate_league_code("My League!", random.Random(7))
    assert code.startswith("MYLE-")
    assert CODE_PATTERN.match(code)


def test_generate_league_code_short_and_symbolic_names():
    assert league_service.generate_league_code("Go", random.Random(1)).startswith("GO-")
    assert CODE_PATTERN.match(league_service.generate_league_code("!!!", random.Random(1)))


def test_generate_league_code_is_seedable():
    first = league_service.generate_league_code("Runners", random.Random(42))
    second = league_service.generate_league_code("Runners", random.Random(42))
    assert first == second
    assert 1000 <= int(first.split("-")[1]) <= 9999


@pytest.mark.asyncio
async def test_create_league(client):
    response = await client.post(
        "/leagues", json={"name": "Morning Crew", "description": "Early birds"}
    )
    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Morning Crew"
    assert data["description"] == "Early birds"
    assert data["code"].startswith("MORN-")
    assert data["member_count"] == 1


@pytest.mark.asyncio
async def test_create_league_requires_name(client):
    response = await client.post("/leagues", json={"name": ""})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_league_blank_name_is_rejected(client):
    response = await client.post("/leagues", json={"name": "   "})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_my_leagues(client, db_session, second_user):
    await league_service.create_league(db_session, "Not mine", None, second_user.id)
    await db_session.commit()
    await client.post("/leagues", json={"name": "Mine"})

    response = await client.get("/leagues")
    assert response.status_code == 200
    data = response.json()
    assert [league["name"] for league in data] == ["Mine"]
    assert data[0]["member_count"] == 1


@pytest.mark.asyncio
async def test_join_league_by_code(client, db_session, second_user):
    league = await league_service.create_league(
        db_session, "Runners", None, second_user.id, rng=random.Random(3)
    )
    await db_session.commit()

    response = await client.post("/leagues/join", json={"code": league["code"].lower()})
    assert response.status_code == 200
    assert response.json() == {"league_id": str(league["id"]), "status": "joined"}

    listed = (await client.get("/leagues")).json()
    assert listed[0]["member_count"] == 2


@pytest.mark.asyncio
async def test_join_league_twice_conflicts(client):
    created = (await client.post("/leagues", json={"name": "Club"})).json()
    response = await client.post("/leagues/join", json={"code": created["code"]})
    assert response.status_code == 409
    assert response.json()["detail"] == "You are already in this league"


@pytest.mark.asyncio
async def test_join_unknown_code(client):
    response = await client.post("/leagues/join", json={"code": "NOPE-0000"})
    assert response.status_code == 404
    assert response.json()["detail"] == "League not found with this code"


@pytest.mark.asyncio
async def test_league_leaderboard_endpoint(client):
    created = (await client.post("/leagues", json={"name": "Board"})).json()
    response = await client.get(f"/leagues/{created['id']}/leaderboard")
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["nickname"] == "tester"
    assert data[0]["total_sessions"] == 0


@pytest.mark.asyncio
async def test_league_leaderboard_requires_membership(client, db_session, second_user):
    league = await league_service.create_league(db_session, "Private", None, second_user.id)
    await db_session.commit()

    response = await client.get(f"/leagues/{league['id']}/leaderboard")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_league_seen_by_new_member(client, db_session, test_user, second_user):
    created = (await client.post("/leagues", json={"name": "Shared"})).json()

    async def as_second_user():
        return second_user

    app.dependency_overrides[get_current_user] = as_second_user
    joined = await client.post("/leagues/join", json={"code": created["code"]})
    assert joined.status_code == 200
    board = (await client.get(f"/leagues/{created['id']}/leaderboard")).json()
    assert {entry["nickname"] for entry in board} == {"tester", "friendly"}


# --- service ---


@pytest.mark.asyncio
async def test_service_join_errors(db_session, test_user, second_user):
    with pytest.raises(NotFoundError):
        await league_service.join_league(db_session, uuid.uuid4(), test_user.id)
    with pytest.raises(NotFoundError):
        await league_service.join_league_by_code(db_session, "ZZZZ-1111", test_user.id)

    league = await league_service.create_league(db_session, "Dup", None, test_user.id)
    with pytest.raises(AlreadyMemberError):
        await league_service.join_league(db_session, league["id"], test_user.id)


@pytest.mark.asyncio
async def test_service_create_strips_name(db_session, test_user):
    league = await league_service.create_league(db_session, "  Pacers  ", None, test_user.id)
    assert league["name"] == "Pacers"
    assert league["created_by"] == test_user.id
    assert await league_service.is_member(db_session, league["id"], test_user.id)

    with pytest.raises(ValidationError):
        await league_service.create_league(db_session, " ", None, test_user.id)
