"""Shared infrastructure for the thumbcraft service."""
