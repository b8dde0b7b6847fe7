"""UserDirectory: channel identity resolution and user CRUD."""

from __future__ import annotations

from loguru import logger

from flowbot.core.errors import ConflictError, NotFoundError
from flowbot.memory.base import UserRepository
from flowbot.memory.entities import User
from flowbot.memory.values import Channel, require_id


class UserDirectory:
    def __init__(self, users: UserRepository):
        self._users = users

    def ensure_user(self, channel: str | Channel, channel_id: str) -> User:
        """Return the user for ``(channel, channel_id)``, creating it on first sight.

        Never inserts twice for the same pair: a concurrent insert that wins
        the unique constraint is resolved by reading the winner back.
        """
        channel = Channel.parse(channel)
        channel_id = require_id(channel_id, "channel_id")

        user = self._users.find_by_channel(channel.value, channel_id)
        if user is not None:
            return user

        user = User.new(channel, channel_id)
        try:
            self._users.create(user)
        except ConflictError:
            existing = self._users.find_by_channel(channel.value, channel_id)
            if existing is None:
                raise
            logger.debug(f"User {channel.value}:{channel_id} created concurrently, reusing")
            return existing
        return user

    def create_user(self, channel: str | Channel, channel_id: str) -> User:
        user = User.new(channel, channel_id)
        if self._users.find_by_channel(user.channel.value, user.channel_id) is not None:
            raise ConflictError(f"user already exists: {user.channel.value}:{user.channel_id}")
        self._users.create(user)
        return user

    def get_user(self, user_id: str) -> User:
        user = self._users.find_by_id(require_id(user_id, "user_id"))
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def get_user_by_channel(self, channel: str | Channel, channel_id: str) -> User:
        channel = Channel.parse(channel)
        user = self._users.find_by_channel(channel.value, require_id(channel_id, "channel_id"))
        if user is None:
            raise NotFoundError("user", f"{channel.value}:{channel_id}")
        return user

    def list_users(self) -> list[User]:
        return self._users.list()

    def delete_user(self, user_id: str) -> None:
        """Delete the user record; its sessions stay as history."""
        if not self._users.delete(require_id(user_id, "user_id")):
            raise NotFoundError("user", user_id)
        logger.info(f"User deleted: {user_id}")
