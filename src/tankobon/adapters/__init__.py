"""Adapters between the catalog core and the outside world."""
