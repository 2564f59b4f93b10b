"""Thin HTTP boundary over NarrativeEngine sessions."""

from .app import build_generator, create_app

__all__ = ["build_generator", "create_app"]
