"""NexChat - live Twitch chat feed with emote overlays and chat analytics."""

__version__ = "0.1.0"
