"""Channel base: access control shared by connectors."""

from __future__ import annotations

from flowbot.core.config.schema import ChannelsConfig


def check_allowlist(channels_config: ChannelsConfig, channel: str, sender_id: str) -> bool:
    """Check if sender is in the channel's allow_from list.

    Empty allow_from list means allow everyone.
    """
    channel_cfg = getattr(channels_config, channel, None)
    if channel_cfg is None:
        return False

    allow_from = getattr(channel_cfg, "allow_from", [])
    if not allow_from:
        return True  # Empty list = no restriction

    return sender_id in allow_from


def is_enabled(channels_config: ChannelsConfig, channel: str) -> bool:
    channel_cfg = getattr(channels_config, channel, None)
    return bool(channel_cfg and channel_cfg.enabled)
