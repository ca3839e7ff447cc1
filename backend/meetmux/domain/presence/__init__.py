"""Presence tracking over realtime channels."""
