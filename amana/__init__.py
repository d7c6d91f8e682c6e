"""Amana - conversational context and dispatch core for the logistics back office."""

__version__ = "0.1.0"
