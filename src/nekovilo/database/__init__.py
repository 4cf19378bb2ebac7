"""
Database package for Nekovilo.

Public API:
    - db_connection: Singleton aiosqlite connection manager
    - SchemaManager: Table creation and legacy column migration
"""
