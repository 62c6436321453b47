"""Wayfare marketplace backend: availability engine and realtime chat relay."""

__version__ = "1.0.0"
