"""Cogs registered on the relay bot."""
