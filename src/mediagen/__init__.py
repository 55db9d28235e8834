"""Asynchronous media-generation queue."""

__version__ = "0.1.0"
