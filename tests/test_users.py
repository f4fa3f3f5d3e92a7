import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from friendspo.dependencies import get_token_subject
from friendspo.main import app
from friendspo.models.friendship import Friendship
from friendspo.models.league import League
from friendspo.models.league_member import LeagueMember
from friendspo.models.session import Session
from friendspo.models.user import User
from friendspo.services import league_service
from tests.conftest import add_session, make_friends


def _authenticate_as(user_id: uuid.UUID) -> None:
    async def override_get_token_subject():
        return user_id

    app.dependency_overrides[get_token_subject] = override_get_token_subject


async def _count(db, model, *where) -> int:
    result = await db.execute(select(func.count()).select_from(model).where(*where))
    return result.scalar_one()


@pytest.mark.asyncio
async def test_create_profile(client):
    new_id = uuid.uuid4()
    _authenticate_as(new_id)

    response = await client.post(
        "/users/me", json={"nickname": " newbie ", "email": "new@example.com"}
    )
    assert response.status_code == 201
    data = response.json()
    assert data["id"] == str(new_id)
    assert data["nickname"] == "newbie"
    assert data["email"] == "new@example.com"
    assert data["is_sharing_enabled"] is True


@pytest.mark.asyncio
async def test_create_profile_with_sharing_disabled(client):
    _authenticate_as(uuid.uuid4())
    response = await client.post(
        "/users/me", json={"nickname": "lurker", "is_sharing_enabled": False}
    )
    assert response.status_code == 201
    assert response.json()["is_sharing_enabled"] is False


@pytest.mark.asyncio
async def test_create_profile_nickname_taken(client, test_user):
    _authenticate_as(uuid.uuid4())
    response = await client.post("/users/me", json={"nickname": "tester"})
    assert response.status_code == 409
    assert response.json()["detail"] == "Nickname already taken"


@pytest.mark.asyncio
async def test_create_profile_twice(client, test_user):
    _authenticate_as(test_user.id)
    response = await client.post("/users/me", json={"nickname": "another"})
    assert response.status_code == 409
    assert response.json()["detail"] == "Profile already exists"


@pytest.mark.asyncio
async def test_create_profile_blank_nickname(client):
    _authenticate_as(uuid.uuid4())
    response = await client.post("/users/me", json={"nickname": "   "})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_nickname_availability(client, test_user, second_user):
    _authenticate_as(test_user.id)

    taken = await client.get("/users/nickname-available?nickname=friendly")
    assert taken.status_code == 200
    assert taken.json() == {"nickname": "friendly", "available": False}

    free = await client.get("/users/nickname-available?nickname=brand-new")
    assert free.json()["available"] is True

    # Your own nickname counts as available to you
    own = await client.get("/users/nickname-available?nickname=tester")
    assert own.json()["available"] is True


@pytest.mark.asyncio
async def test_get_profile(client, test_user):
    response = await client.get("/users/me")
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(test_user.id)
    assert data["nickname"] == "tester"


@pytest.mark.asyncio
async def test_update_profile(client):
    response = await client.patch(
        "/users/me", json={"nickname": "renamed", "is_sharing_enabled": False}
    )
    assert response.status_code == 200
    data = response.json()
    assert data["nickname"] == "renamed"
    assert data["is_sharing_enabled"] is False


@pytest.mark.asyncio
async def test_update_profile_partial(client):
    response = await client.patch("/users/me", json={"is_sharing_enabled": False})
    assert response.status_code == 200
    assert response.json()["nickname"] == "tester"

    same = await client.patch("/users/me", json={"nickname": "tester"})
    assert same.status_code == 200


@pytest.mark.asyncio
async def test_update_profile_nickname_taken(client, second_user):
    response = await client.patch("/users/me", json={"nickname": "friendly"})
    assert response.status_code == 409
    assert response.json()["detail"] == "Nickname already taken"


@pytest.mark.asyncio
async def test_delete_profile_cascades(client, db_session, test_user, second_user, third_user):
    now = datetime.now(timezone.utc)
    await add_session(db_session, test_user, now - timedelta(hours=2))
    await add_session(db_session, second_user, now - timedelta(hours=2))
    await make_friends(db_session, test_user, second_user)
    await make_friends(db_session, second_user, third_user)

    owned = await league_service.create_league(db_session, "Mine", None, test_user.id)
    await league_service.join_league(db_session, owned["id"], second_user.id)
    theirs = await league_service.create_league(db_session, "Theirs", None, second_user.id)
    await league_service.join_league(db_session, theirs["id"], test_user.id)
    await db_session.commit()

    response = await client.delete("/users/me")
    assert response.status_code == 204

    assert await _count(db_session, User, User.id == test_user.id) == 0
    assert await _count(db_session, Session, Session.user_id == test_user.id) == 0
    assert await _count(
        db_session,
        Friendship,
        (Friendship.user_id == test_user.id) | (Friendship.friend_id == test_user.id),
    ) == 0
    assert await _count(db_session, League, League.id == owned["id"]) == 0
    assert await _count(db_session, LeagueMember, LeagueMember.user_id == test_user.id) == 0

    # Other users keep their own data
    assert await _count(db_session, Session, Session.user_id == second_user.id) == 1
    assert await _count(db_session, Friendship, Friendship.user_id == second_user.id) == 1
    assert await _count(db_session, LeagueMember, LeagueMember.league_id == theirs["id"]) == 1
