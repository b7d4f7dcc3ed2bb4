"""TermLeek: a terminal window with an optional scaled background image."""

__version__ = "0.1.0"
