"""Popcorn order dashboard backend."""
