from __future__ import annotations

from typing import Callable

from .services.session import SessionManager

_session_manager_provider: Callable[[], SessionManager] | None = None


def set_session_manager_provider(provider: Callable[[], SessionManager]) -> None:
    """Register a callable that returns the active session manager."""

    global _session_manager_provider
    _session_manager_provider = provider


def get_session_manager_dependency() -> SessionManager:
    """FastAPI dependency returning the configured session manager."""

    if _session_manager_provider is None:
        raise RuntimeError("Session manager provider has not been configured")
    return _session_manager_provider()
