"""Channel connectors: webhook endpoints and per-channel access control."""

from flowbot.core.channels.base import check_allowlist, is_enabled

__all__ = ["check_allowlist", "is_enabled"]
