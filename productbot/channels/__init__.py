"""Chat platform channels."""

from productbot.channels.discord import DiscordChannel

__all__ = ["DiscordChannel"]
