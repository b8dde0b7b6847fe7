"""ChatRunner: the conversation pipeline between the store, the LLM and skills."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from flowbot.agent.identity import UserDirectory
from flowbot.agent.skills.base import SkillRuntime
from flowbot.agent.tasks import SkillOutcome, TaskDispatcher
from flowbot.core.cancel import CancelToken
from flowbot.core.errors import NotFoundError, RepositoryError, ValidationError
from flowbot.core.providers.base import (
    BaseLLMProvider,
    ChatMessage,
    CompletionRequest,
    TokenUsage,
)
from flowbot.memory.entities import Message, Session, Task
from flowbot.memory.store import MemoryStore
from flowbot.memory.values import Channel, MessageRole, require_id

MAX_MESSAGE_LENGTH = 10_000


@dataclass
class SendResult:
    message: Message
    messages: list[Message]
    session: Session
    tokens: TokenUsage


class ChatRunner:
    """
    Request-scoped orchestrator.

    Flow (``send``):
        1. Resolve or create the user (channel identity)
        2. Open a new session
        3. Save the user message
        4. Load session history (chronological)
        5. provider.generate() under the request's cancel token
        6. Save the assistant message (best effort)
        7. Touch the session (best effort)
        8. Re-read the transcript and return it with the reply

    The first fatal error aborts the pipeline. Collaborators are injected and
    never closed here.
    """

    def __init__(
        self,
        db: MemoryStore,
        provider: BaseLLMProvider,
        runtime: SkillRuntime,
        max_message_length: int = MAX_MESSAGE_LENGTH,
    ):
        self.db = db
        self.max_message_length = max_message_length
        self.provider = provider
        self.runtime = runtime
        self.users = UserDirectory(db.users)
        self.tasks = TaskDispatcher(db.sessions, db.tasks, runtime)

    async def send(
        self,
        user_id: str,
        content: str,
        role: str | MessageRole = MessageRole.USER,
        model: str | None = None,
        max_tokens: int | None = None,
        channel: str | Channel = Channel.WEB,
        token: CancelToken | None = None,
    ) -> SendResult:
        """Process one inbound message and return the reply plus the transcript."""
        token = token or CancelToken()
        MessageRole.parse(role)
        if not content or not content.strip():
            raise ValidationError("message content cannot be empty")
        if len(content) > self.max_message_length:
            logger.warning(
                f"Rejected message from {user_id}: {len(content)} chars > {self.max_message_length}"
            )
            raise ValidationError(
                f"message content exceeds maximum length of {self.max_message_length} characters"
            )

        token.raise_if_cancelled()
        user = self.users.ensure_user(channel, user_id)

        token.raise_if_cancelled()
        session = Session.new(user.id)
        self.db.sessions.create(session)

        token.raise_if_cancelled()
        user_message = Message.new(session.id, MessageRole.USER, content)
        self.db.messages.create(user_message)

        token.raise_if_cancelled()
        history = self._history(session.id)

        token.raise_if_cancelled()
        request = CompletionRequest(messages=history, model=model, max_tokens=max_tokens)
        response = await token.run(self.provider.generate(request))
        logger.debug(
            f"LLM reply for session {session.id}: "
            f"{response.tokens.input}+{response.tokens.output} tokens"
        )

        token.raise_if_cancelled()
        assistant = Message.new(session.id, MessageRole.ASSISTANT, response.message.content)
        try:
            self.db.messages.create(assistant)
        except RepositoryError as e:
            logger.error(f"Failed to save assistant message in session {session.id}: {e}")

        session.touch()
        try:
            self.db.sessions.update(session)
        except RepositoryError as e:
            logger.error(f"Failed to update session {session.id}: {e}")

        try:
            transcript = self.db.messages.find_by_session_id(session.id)
        except RepositoryError as e:
            logger.error(f"Failed to reload transcript for session {session.id}: {e}")
            transcript = []

        return SendResult(message=assistant, messages=transcript, session=session, tokens=response.tokens)

    def _history(self, session_id: str) -> list[ChatMessage]:
        return [
            ChatMessage(role=m.role.value, content=m.content)
            for m in self.db.messages.find_by_session_id(session_id)
        ]

    # ════════════════════════════════════════════════════════════
    # SESSIONS / QUERIES
    # ════════════════════════════════════════════════════════════

    def create_session(self, user_id: str) -> Session:
        user = self.users.get_user(user_id)
        session = Session.new(user.id)
        self.db.sessions.create(session)
        return session

    def get_session(self, session_id: str) -> Session:
        session = self.db.sessions.find_by_id(require_id(session_id, "session_id"))
        if session is None:
            raise NotFoundError("session", session_id)
        return session

    def delete_session(self, session_id: str) -> Session:
        session = self.get_session(session_id)
        self.db.sessions.delete(session.id)
        return session

    def get_conversation(self, session_id: str) -> list[Message]:
        session = self.get_session(session_id)
        return self.db.messages.find_by_session_id(session.id)

    def get_user_sessions(self, user_id: str) -> list[Session]:
        user = self.users.get_user(user_id)
        return self.db.sessions.find_by_user_id(user.id)

    def get_session_tasks(self, session_id: str) -> list[Task]:
        session = self.get_session(session_id)
        return self.db.tasks.find_by_session_id(session.id)

    # ════════════════════════════════════════════════════════════
    # SKILLS
    # ════════════════════════════════════════════════════════════

    async def execute_skill(
        self,
        session_id: str,
        skill: str,
        input: dict[str, Any] | None = None,
        token: CancelToken | None = None,
    ) -> SkillOutcome:
        return await self.tasks.execute_skill(session_id, skill, input, token=token)
