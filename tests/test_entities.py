"""Tests for flowbot.memory.entities."""

import pytest

from flowbot.core.errors import ValidationError
from flowbot.memory.entities import (
    Message,
    Schedule,
    Session,
    Skill,
    Task,
    User,
    canonical_json,
)
from flowbot.memory.values import Channel, MessageRole, TaskStatus


def test_canonical_json():
    assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'
    with pytest.raises(ValidationError):
        canonical_json({"x": object()})


def test_user_new():
    user = User.new("telegram", "12345")
    assert user.channel is Channel.TELEGRAM
    assert user.channel_id == "12345"
    with pytest.raises(ValidationError):
        User.new("telegram", "")
    with pytest.raises(ValidationError):
        User.new("fax", "1")


def test_session_touch_never_goes_back():
    session = Session.new("u1")
    assert session.updated_at == session.created_at
    session.touch()
    assert session.updated_at > session.created_at


def test_message_rejects_empty_content():
    with pytest.raises(ValidationError):
        Message.new("s1", "user", "   ")
    with pytest.raises(ValidationError):
        Message.new("s1", "narrator", "hi")


def test_message_is_immutable():
    msg = Message.new("s1", MessageRole.USER, "hi")
    with pytest.raises(AttributeError):
        msg.content = "changed"


def test_task_happy_path():
    task = Task.new("s1", "echo", '{"a":1}')
    assert task.status is TaskStatus.PENDING
    assert task.get_input() == {"a": 1}

    task.start()
    assert task.status is TaskStatus.RUNNING
    task.complete("done")
    assert task.status is TaskStatus.COMPLETED
    assert task.output == "done"
    assert task.error == ""
    assert task.updated_at >= task.created_at


def test_task_failure_default_error():
    task = Task.new("s1", "echo")
    task.start()
    task.fail("")
    assert task.status is TaskStatus.FAILED
    assert task.error == "skill reported failure"
    assert task.output == ""


@pytest.mark.parametrize(
    "steps",
    [
        ["complete"],
        ["fail"],
        ["start", "start"],
        ["start", "complete", "fail"],
        ["start", "fail", "complete"],
    ],
)
def test_task_illegal_transitions(steps):
    task = Task.new("s1", "echo")
    *ok, last = steps
    for step in ok:
        getattr(task, step)(*(["x"] if step != "start" else []))
    with pytest.raises(ValidationError):
        getattr(task, last)(*(["x"] if last != "start" else []))


def test_schedule():
    schedule = Schedule.new("backup", "0 3 * * *", '{"full":true}')
    assert schedule.enabled
    assert schedule.get_input() == {"full": True}
    schedule.disable()
    assert not schedule.enabled
    schedule.enable()
    assert schedule.enabled
    with pytest.raises(ValidationError):
        Schedule.new("backup", "every day")


def test_skill_permissions_and_timeout():
    skill = Skill.new("fetch", "1.0.0", "/skills/fetch", ["network"], {"timeout": 5})
    assert skill.get_permissions() == ["network"]
    assert skill.requires_permission("network")
    assert not skill.requires_permission("shell")
    assert skill.requires_sandbox()
    assert skill.timeout == 5

    plain = Skill.new("hello", "0.1.0", "")
    assert not plain.requires_sandbox()
    assert plain.timeout == 30


def test_skill_metadata_cache_invalidated():
    skill = Skill.new("hello", "0.1.0", "", metadata={"timeout": 10})
    assert skill.get_metadata() == {"timeout": 10}
    skill.set_metadata({"timeout": 20})
    assert skill.timeout == 20


def test_skill_bad_version():
    with pytest.raises(ValidationError):
        Skill.new("hello", "latest", "")
