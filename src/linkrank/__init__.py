"""Local link-graph rank estimation with a persistent rank cache."""

__version__ = "0.1.0"
