"""Service desk ticketing API."""

__version__ = "1.0.0"
