"""Thumbcraft API: reference photos, AI thumbnail concepts and rendered thumbnails."""

__version__ = "0.1.0"
