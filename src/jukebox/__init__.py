"""Playback session and coin economy engine for the jukebox client."""
