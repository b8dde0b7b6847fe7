"""Tests for flowbot.agent.identity (UserDirectory)."""

from unittest.mock import patch

import pytest

from flowbot.agent.identity import UserDirectory
from flowbot.core.errors import ConflictError, NotFoundError, RepositoryError, ValidationError
from flowbot.memory.entities import User


@pytest.fixture
def users(store):
    return UserDirectory(store.users)


def test_ensure_user_idempotent(users, store):
    first = users.ensure_user("web", "alice")
    second = users.ensure_user("web", "alice")
    assert first.id == second.id
    assert len(store.users.list()) == 1


def test_ensure_user_validates(users):
    with pytest.raises(ValidationError):
        users.ensure_user("web", "")
    with pytest.raises(ValidationError):
        users.ensure_user("carrier-pigeon", "1")


def test_ensure_user_lost_race_reuses_winner(users, store):
    winner = User.new("web", "alice")
    real_find = store.users.find_by_channel
    calls = {"n": 0}

    def find(channel, channel_id):
        # First lookup misses; the concurrent insert lands before ours
        calls["n"] += 1
        if calls["n"] == 1:
            store.users.create(winner)
            return None
        return real_find(channel, channel_id)

    with patch.object(store.users, "find_by_channel", side_effect=find):
        user = users.ensure_user("web", "alice")

    assert user.id == winner.id
    assert len(store.users.list()) == 1


def test_ensure_user_repository_failure(users, store):
    with patch.object(store.users, "find_by_channel", side_effect=RepositoryError("locked")):
        with pytest.raises(RepositoryError):
            users.ensure_user("web", "alice")


def test_create_user_conflict(users):
    users.create_user("telegram", "42")
    with pytest.raises(ConflictError):
        users.create_user("telegram", "42")


def test_lookup_and_delete(users):
    user = users.create_user("cli", "me")
    assert users.get_user(user.id).channel_id == "me"
    assert users.get_user_by_channel("cli", "me").id == user.id
    assert [u.id for u in users.list_users()] == [user.id]

    users.delete_user(user.id)
    with pytest.raises(NotFoundError):
        users.get_user(user.id)
    with pytest.raises(NotFoundError):
        users.get_user_by_channel("cli", "me")
    with pytest.raises(NotFoundError):
        users.delete_user(user.id)
