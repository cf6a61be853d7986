"""Services layer for livescribe application logic."""

from .session_controller import SessionController

__all__ = [
    "SessionController",
]
