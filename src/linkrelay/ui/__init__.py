"""Operator console for the running relay bot."""
