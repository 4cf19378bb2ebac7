"""
Background scheduling for Nekovilo.

- **reload_scheduler.py**: Periodically reloads the trigger cache from the
  rule store so edits made outside the bot (or missed invalidations) are
  picked up. The interval is read from app_config.
"""
