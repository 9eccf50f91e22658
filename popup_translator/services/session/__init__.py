"""
Session Module

- SessionCoordinator: issues session ids and fences superseded sessions

Usage:
    from popup_translator.services.session import SessionCoordinator
"""

from popup_translator.services.session.coordinator import SessionCoordinator, SessionId, SurfaceState

__all__ = [
    "SessionCoordinator",
    "SessionId",
    "SurfaceState",
]
