"""Buildout listings proxy, snapshot cache and listings aggregation."""

__version__ = "1.0.0"
