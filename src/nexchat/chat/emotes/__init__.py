"""Emote catalog, providers and rendering."""
