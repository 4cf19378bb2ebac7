"""
Configuration management for Nekovilo.

- **app_configuration.py**: File-locked YAML configuration loader for global
  settings such as the trigger reload interval, database path, and the links
  shown in help output. Falls back to defaults on missing or malformed files.
"""
