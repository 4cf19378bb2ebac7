"""
Utility helpers for Nekovilo.

- **logger.py**: Centralized logging configuration with colored console output,
  a per-session log file, and suppression of noisy library loggers. Uses
  prompt_toolkit so log lines do not break the interactive console prompt.
"""
