"""Ghostwriter: LinkedIn voice-cloning assistant with grounded generation."""

__version__ = "1.0.0"
