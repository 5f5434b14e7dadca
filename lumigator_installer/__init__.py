"""Lumigator local installer (Python-first, state-driven).

Core design goals:
- One canonical Docker/Compose bootstrap for macOS and Linux (root or rootless)
- Resumable pipeline with persisted state
- Every external command logged
- Fail fast with exit code 1, clean up before reinstalling
"""

__all__ = []
