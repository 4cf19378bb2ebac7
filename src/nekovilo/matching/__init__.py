"""Message-to-trigger matching."""
