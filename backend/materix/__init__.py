"""Materix: friends and shared free time."""
__version__ = "0.1.0"
