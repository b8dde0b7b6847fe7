"""Error taxonomy shared by the store, the pipeline and the API layer.

The API maps each class to a status code (see ``flowbot.api.errors``).
Causes are chained with ``raise ... from`` so logs keep the full story while
responses only carry ``str(exc)``.
"""

from __future__ import annotations


class FlowbotError(Exception):
    """Base class for all flowbot errors."""


class ValidationError(FlowbotError, ValueError):
    """Malformed input: empty id, empty content, bad role, invalid cron, illegal transition."""


class NotFoundError(FlowbotError):
    """A requested entity does not exist."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class RepositoryError(FlowbotError):
    """The underlying store failed."""


class ConflictError(RepositoryError):
    """Unique constraint would be violated (duplicate channel identity, skill name)."""


class ProviderError(FlowbotError):
    """The LLM provider failed or returned a non-success status."""


class SkillRuntimeError(FlowbotError):
    """The skill runtime could not run the skill (transport / harness failure)."""


class Canceled(FlowbotError):
    """Cancellation or deadline was observed."""
