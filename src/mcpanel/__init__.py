"""MCPanel - terminal panel for game-server consoles."""

__version__ = "0.1.0"
