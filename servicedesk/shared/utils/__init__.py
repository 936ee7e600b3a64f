"""Helpers shared across the service desk packages."""
