"""Caller-facing refactor session."""

from .interface import RefactorSession

__all__ = [
    'RefactorSession',
]
