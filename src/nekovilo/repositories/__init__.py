"""Repositories wrapping SQL access for individual tables."""
