"""CSV -> BMEcat (1.2 / 2005) catalog builder."""

__version__ = "0.1.0"
