"""Event listener cogs."""
