"""Slash command cogs."""
