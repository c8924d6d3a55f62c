"""GPT-SoVITS environment installer (Python-first, state-driven).

Core design goals:
- State-driven and resumable
- Idempotent steps, presence checks before every download
- Concurrent fetch with a single join barrier before unpacking
- Fail fast on package-manager errors
- Centralized logging
"""

__all__ = []
