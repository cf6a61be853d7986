"""Console presentation for livescribe sessions."""

from .console import ConsolePresenter

__all__ = ["ConsolePresenter"]
